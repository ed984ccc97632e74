"""
Job Store - PostgreSQL persistence for video generation jobs.

Tracks every generation request for:
- Status polling and SSE streaming
- Cost accounting
- The user's video gallery

Status transitions are monotonic: once a row is complete or error, further
status changes are ignored by the WHERE guard in update_status().
"""

import logging
from typing import Any, Optional

import asyncpg

from services.video_generation.models import GenerationJob, JobStatus

logger = logging.getLogger(__name__)

# Columns update_status() may touch
UPDATABLE_COLUMNS = (
    "status",
    "provider_job_id",
    "video_url",
    "thumbnail_url",
    "r2_key",
    "duration_seconds",
    "resolution",
    "cost",
    "error",
    "completed_at",
)

MESSAGE_MEDIA_COLUMNS = (
    "media_status",
    "media_url",
    "media_thumbnail_url",
    "media_duration",
    "media_r2_key",
    "media_error",
    "media_type",
)

ACTIVE_STATUSES = [JobStatus.PENDING.value, JobStatus.GENERATING.value]


class JobStore:
    """
    Persists video generation jobs to PostgreSQL.

    Usage:
        store = JobStore(db_pool)

        # Record new job
        await store.insert(job)

        # Partial update
        await store.update_status(job.id, status=JobStatus.COMPLETE, video_url=url)

        # Gallery listing
        jobs, total = await store.list_for_user(user_id, limit=20)
    """

    def __init__(self, db_pool: asyncpg.Pool):
        self.db_pool = db_pool

    async def insert(self, job: GenerationJob):
        """Create a new job row."""
        async with self.db_pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO video_generations (
                    id,
                    user_id,
                    message_id,
                    conversation_id,
                    prompt,
                    provider,
                    provider_job_id,
                    model,
                    status,
                    video_url,
                    aspect_ratio,
                    resolution,
                    duration_seconds,
                    cost,
                    error,
                    created_at,
                    completed_at
                ) VALUES (
                    $1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16, $17
                )
                """,
                job.id,
                job.user_id,
                job.message_id,
                job.conversation_id,
                job.prompt,
                job.provider,
                job.provider_job_id,
                job.model,
                job.status.value,
                job.video_url,
                job.aspect_ratio,
                job.resolution,
                job.duration_seconds,
                job.cost,
                job.error,
                job.created_at,
                job.completed_at,
            )

        logger.info(f"Created job {job.id} ({job.provider}/{job.model}) status={job.status.value}")

    async def update_status(self, job_id: str, **fields: Any) -> bool:
        """
        Apply a partial update to a job.

        Updates that change `status` only apply to jobs still pending or
        generating. Returns False when the guard rejected the update.
        """
        unknown = set(fields) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update columns: {sorted(unknown)}")
        if not fields:
            return False

        assignments = []
        params: list[Any] = []
        for idx, (column, value) in enumerate(fields.items(), start=1):
            if isinstance(value, JobStatus):
                value = value.value
            assignments.append(f"{column} = ${idx}")
            params.append(value)

        params.append(job_id)
        query = f"UPDATE video_generations SET {', '.join(assignments)} WHERE id = ${len(params)}"

        if "status" in fields:
            params.append(ACTIVE_STATUSES)
            query += f" AND status = ANY(${len(params)}::text[])"

        async with self.db_pool.acquire() as conn:
            result = await conn.execute(query, *params)

        applied = not result.endswith(" 0")
        if "status" in fields:
            status = fields["status"]
            status = status.value if isinstance(status, JobStatus) else status
            if applied:
                logger.info(f"Updated job {job_id} status to {status}")
            else:
                logger.warning(f"Ignored status change of job {job_id} to {status} (already terminal)")
        return applied

    async def get_by_id(self, job_id: str, user_id: Optional[str] = None) -> Optional[GenerationJob]:
        """Get a single job, optionally scoped to its owner."""
        async with self.db_pool.acquire() as conn:
            if user_id is None:
                row = await conn.fetchrow(
                    "SELECT * FROM video_generations WHERE id = $1",
                    job_id,
                )
            else:
                row = await conn.fetchrow(
                    "SELECT * FROM video_generations WHERE id = $1 AND user_id = $2",
                    job_id,
                    user_id,
                )
            return GenerationJob.from_row(dict(row)) if row else None

    async def list_for_user(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
        status: Optional[str] = None,
    ) -> tuple[list[GenerationJob], int]:
        """
        Page through a user's jobs, newest first.

        Returns:
            (jobs on this page, total matching jobs)
        """
        where = "WHERE user_id = $1"
        params: list[Any] = [user_id]
        if status:
            params.append(status)
            where += f" AND status = ${len(params)}"

        async with self.db_pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT * FROM video_generations
                {where}
                ORDER BY created_at DESC
                LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}
                """,
                *params,
                limit,
                offset,
            )
            total = await conn.fetchval(
                f"SELECT COUNT(*) FROM video_generations {where}",
                *params,
            )

        return [GenerationJob.from_row(dict(row)) for row in rows], total or 0

    async def update_prompt(self, job_id: str, user_id: str, prompt: str):
        async with self.db_pool.acquire() as conn:
            await conn.execute(
                "UPDATE video_generations SET prompt = $1 WHERE id = $2 AND user_id = $3",
                prompt,
                job_id,
                user_id,
            )

    async def delete(self, job_id: str, user_id: str):
        async with self.db_pool.acquire() as conn:
            await conn.execute(
                "DELETE FROM video_generations WHERE id = $1 AND user_id = $2",
                job_id,
                user_id,
            )
        logger.info(f"Deleted job {job_id}")

    async def update_message_media(
        self,
        message_id: str,
        conversation_id: Optional[str] = None,
        **fields: Any,
    ):
        """Mirror a job's result onto the chat message that launched it."""
        unknown = set(fields) - set(MESSAGE_MEDIA_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update message columns: {sorted(unknown)}")
        if not fields:
            return

        assignments = [f"{column} = ${idx}" for idx, column in enumerate(fields, start=1)]
        params: list[Any] = list(fields.values())
        params.append(message_id)
        query = f"UPDATE chat_messages SET {', '.join(assignments)} WHERE id = ${len(params)}"
        if conversation_id:
            params.append(conversation_id)
            query += f" AND conversation_id = ${len(params)}"

        async with self.db_pool.acquire() as conn:
            await conn.execute(query, *params)
