"""
Storage clients used by the generation lifecycle.

- KVStore: provider key configuration and cached pricing (Redis)
- JobStore / ScheduleStore: relational rows (PostgreSQL via asyncpg)
- ArtifactStore: finished video files (R2 via boto3)
"""

from .artifact_store import ArtifactStore, artifact_key
from .job_store import JobStore
from .kv_store import KVStore
from .schedule_store import ScheduleStore

__all__ = [
    "ArtifactStore",
    "artifact_key",
    "JobStore",
    "KVStore",
    "ScheduleStore",
]
