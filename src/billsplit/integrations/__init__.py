"""billsplit integrations module."""

from billsplit.integrations.local_export import LocalExporter, breakdown_to_row
from billsplit.integrations.share_store import JsonFileShareCodeStore

__all__ = [
    "JsonFileShareCodeStore",
    "LocalExporter",
    "breakdown_to_row",
]
