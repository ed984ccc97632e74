"""Schedule Store - PostgreSQL persistence for recurring video schedules."""

import logging
from datetime import datetime
from typing import Any, Optional

import asyncpg

from services.video_generation.schedules import VideoSchedule

logger = logging.getLogger(__name__)

UPDATABLE_COLUMNS = ("name", "prompt", "frequency", "model", "aspect_ratio", "enabled", "max_runs")


class ScheduleStore:
    """CRUD over the video_schedules table, always scoped to the owner."""

    def __init__(self, db_pool: asyncpg.Pool):
        self.db_pool = db_pool

    async def list_for_user(self, user_id: str) -> list[VideoSchedule]:
        async with self.db_pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT * FROM video_schedules
                WHERE user_id = $1
                ORDER BY created_at DESC
                """,
                user_id,
            )
            return [VideoSchedule.from_row(dict(row)) for row in rows]

    async def get(self, schedule_id: str, user_id: str) -> Optional[VideoSchedule]:
        async with self.db_pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM video_schedules WHERE id = $1 AND user_id = $2",
                schedule_id,
                user_id,
            )
            return VideoSchedule.from_row(dict(row)) if row else None

    async def insert(self, schedule: VideoSchedule):
        async with self.db_pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO video_schedules (
                    id, user_id, name, prompt, provider, model, aspect_ratio,
                    frequency, enabled, next_run_at, max_runs, created_at, updated_at
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
                """,
                schedule.id,
                schedule.user_id,
                schedule.name,
                schedule.prompt,
                schedule.provider,
                schedule.model,
                schedule.aspect_ratio,
                schedule.frequency.value,
                schedule.enabled,
                schedule.next_run_at,
                schedule.max_runs,
                schedule.created_at,
                schedule.updated_at,
            )
        logger.info(f"Created schedule {schedule.id} ({schedule.frequency.value}) for user {schedule.user_id}")

    async def update(self, schedule_id: str, user_id: str, updates: dict[str, Any]):
        unknown = set(updates) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update columns: {sorted(unknown)}")

        assignments = [f"{column} = ${idx}" for idx, column in enumerate(updates, start=1)]
        params: list[Any] = list(updates.values())
        params.append(datetime.utcnow())
        assignments.append(f"updated_at = ${len(params)}")
        params.extend([schedule_id, user_id])

        async with self.db_pool.acquire() as conn:
            await conn.execute(
                f"""
                UPDATE video_schedules SET {', '.join(assignments)}
                WHERE id = ${len(params) - 1} AND user_id = ${len(params)}
                """,
                *params,
            )

    async def delete(self, schedule_id: str, user_id: str):
        async with self.db_pool.acquire() as conn:
            await conn.execute(
                "DELETE FROM video_schedules WHERE id = $1 AND user_id = $2",
                schedule_id,
                user_id,
            )
        logger.info(f"Deleted schedule {schedule_id}")
