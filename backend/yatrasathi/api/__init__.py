from .client import ApiClient, key_path, unwrap_record, unwrap_records

__all__ = [
    "ApiClient",
    "key_path",
    "unwrap_record",
    "unwrap_records",
]
