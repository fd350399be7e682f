"""Git backend public surface: repository discovery, operations, value types."""

from .backend import (
    GitBackend,
    classify_push_failure,
    discover_repository,
    open_backend,
    parse_porcelain_status,
    report_order_key,
)
from .models import ChangeKind, CommitInfo, FileEntry, StatusSnapshot

__all__ = [
    "ChangeKind",
    "CommitInfo",
    "FileEntry",
    "GitBackend",
    "StatusSnapshot",
    "classify_push_failure",
    "discover_repository",
    "open_backend",
    "parse_porcelain_status",
    "report_order_key",
]
