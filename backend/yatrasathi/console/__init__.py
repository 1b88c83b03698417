from .controller import AdminConsole
from .descriptors import AuditFields, ComputedField, FieldDescriptor, FieldType, ModuleDescriptor
from .notices import Notice, parse_error
from .registry import REGISTRY, ModuleRegistry
from .workspaces import ConsoleWorkspaces

__all__ = [
    "AdminConsole",
    "AuditFields",
    "ComputedField",
    "FieldDescriptor",
    "FieldType",
    "ModuleDescriptor",
    "ModuleRegistry",
    "Notice",
    "REGISTRY",
    "ConsoleWorkspaces",
    "parse_error",
]
