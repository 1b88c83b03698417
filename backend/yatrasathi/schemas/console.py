from typing import Any, Literal

from pydantic import BaseModel, Field


class ModuleRequest(BaseModel):
    module: str = Field(..., min_length=1)


class FiltersRequest(BaseModel):
    filters: dict[str, Any]


class SelectRequest(BaseModel):
    index: int | None = Field(None, ge=0)
    key: list[Any] | None = None


class FieldsRequest(BaseModel):
    values: dict[str, Any]


class DeleteRequest(BaseModel):
    confirmed: bool = False


class NavigateRequest(BaseModel):
    direction: Literal["first", "prev", "next", "last"]


class KeyRequest(BaseModel):
    key: str = Field(..., min_length=1)


class PageRequest(BaseModel):
    page: int
