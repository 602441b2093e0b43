from vault_recovery.snapshot.builder import (
    Snapshot,
    SnapshotMetadata,
    build_snapshot,
)
from vault_recovery.snapshot.reader import (
    SnapshotSummary,
    UserOwed,
    find_latest_summary,
    load_snapshot,
    parse_snapshot,
)
from vault_recovery.snapshot.writer import (
    to_detailed_dict,
    to_summary_dict,
    write_snapshot,
)

__all__ = [
    "Snapshot",
    "SnapshotMetadata",
    "SnapshotSummary",
    "UserOwed",
    "build_snapshot",
    "find_latest_summary",
    "load_snapshot",
    "parse_snapshot",
    "to_detailed_dict",
    "to_summary_dict",
    "write_snapshot",
]
