from vault_recovery.utils.file_utils import load_json, write_json_atomic
from vault_recovery.utils.formatters import (
    create_table,
    format_percent,
    format_wei,
)

__all__ = [
    "create_table",
    "format_percent",
    "format_wei",
    "load_json",
    "write_json_atomic",
]
