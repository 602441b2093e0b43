from vault_recovery.scanning.checkpoint import ScanCheckpoint
from vault_recovery.scanning.fetcher import LogFetcher
from vault_recovery.scanning.models import RawLog, merge_logs

__all__ = ["LogFetcher", "RawLog", "ScanCheckpoint", "merge_logs"]
