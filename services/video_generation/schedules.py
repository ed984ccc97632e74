"""
Recurring video schedules.

A schedule stores a prompt and a frequency; next_run_at is derived from the
frequency when the schedule is created.
"""

import calendar
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

from core.errors import InvalidRequestError

from .models import DEFAULT_ASPECT_RATIO, validate_prompt


class Frequency(str, Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


VALID_FREQUENCIES = [f.value for f in Frequency]
DEFAULT_SCHEDULE_PROVIDER = "openai"
DEFAULT_SCHEDULE_MODEL = "sora-2"


def validate_frequency(frequency: Optional[str]) -> Frequency:
    try:
        return Frequency(frequency or Frequency.DAILY.value)
    except ValueError:
        raise InvalidRequestError(
            f"Invalid frequency. Must be one of: {', '.join(VALID_FREQUENCIES)}",
            error_code="invalid_frequency",
        )


def validate_max_runs(max_runs: Any) -> Optional[int]:
    """None means unlimited; otherwise a positive whole number of runs."""
    if max_runs is None:
        return None
    if isinstance(max_runs, bool) or not isinstance(max_runs, int) or max_runs < 1:
        raise InvalidRequestError("maxRuns must be a positive integer", error_code="invalid_max_runs")
    return max_runs


def _add_month(moment: datetime) -> datetime:
    year = moment.year + moment.month // 12
    month = moment.month % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def compute_next_run(frequency: Frequency, now: Optional[datetime] = None) -> datetime:
    """Next run time one frequency period after `now` (UTC)."""
    now = now or datetime.utcnow()
    if frequency == Frequency.HOURLY:
        return now + timedelta(hours=1)
    if frequency == Frequency.DAILY:
        return now + timedelta(days=1)
    if frequency == Frequency.WEEKLY:
        return now + timedelta(days=7)
    return _add_month(now)


@dataclass
class VideoSchedule:
    id: str
    user_id: str
    name: str
    prompt: str
    provider: str = DEFAULT_SCHEDULE_PROVIDER
    model: str = DEFAULT_SCHEDULE_MODEL
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    frequency: Frequency = Frequency.DAILY
    enabled: bool = True
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    total_runs: int = 0
    max_runs: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def from_row(cls, row: dict) -> "VideoSchedule":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            prompt=row["prompt"],
            provider=row.get("provider") or DEFAULT_SCHEDULE_PROVIDER,
            model=row.get("model") or DEFAULT_SCHEDULE_MODEL,
            aspect_ratio=row.get("aspect_ratio") or DEFAULT_ASPECT_RATIO,
            frequency=Frequency(row.get("frequency") or Frequency.DAILY.value),
            enabled=bool(row.get("enabled", True)),
            last_run_at=row.get("last_run_at"),
            next_run_at=row.get("next_run_at"),
            total_runs=row.get("total_runs") or 0,
            max_runs=row.get("max_runs"),
            created_at=row.get("created_at") or datetime.utcnow(),
            updated_at=row.get("updated_at") or datetime.utcnow(),
        )

    def to_dict(self) -> dict:
        def iso(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "id": self.id,
            "name": self.name,
            "prompt": self.prompt,
            "provider": self.provider,
            "model": self.model,
            "aspectRatio": self.aspect_ratio,
            "frequency": self.frequency.value,
            "enabled": self.enabled,
            "lastRunAt": iso(self.last_run_at),
            "nextRunAt": iso(self.next_run_at),
            "totalRuns": self.total_runs,
            "maxRuns": self.max_runs,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


def build_schedule_updates(body: dict) -> dict[str, Any]:
    """
    Validate a PATCH body and return the column updates it implies.

    Only keys present in the body are considered. Raises
    InvalidRequestError for invalid values or when nothing is updatable.
    """
    updates: dict[str, Any] = {}

    if "name" in body:
        name = body["name"]
        if not isinstance(name, str) or not name.strip():
            raise InvalidRequestError("Name must be a non-empty string")
        updates["name"] = name.strip()

    if "prompt" in body:
        prompt = body["prompt"]
        if not isinstance(prompt, str) or not prompt.strip():
            raise InvalidRequestError("Prompt must be a non-empty string")
        updates["prompt"] = validate_prompt(prompt)

    if "frequency" in body:
        if body["frequency"] not in VALID_FREQUENCIES:
            raise InvalidRequestError(
                f"Invalid frequency. Must be one of: {', '.join(VALID_FREQUENCIES)}"
            )
        updates["frequency"] = body["frequency"]

    if "model" in body:
        updates["model"] = body["model"]

    if "aspectRatio" in body:
        updates["aspect_ratio"] = body["aspectRatio"]

    if "enabled" in body:
        updates["enabled"] = bool(body["enabled"])

    if "maxRuns" in body:
        updates["max_runs"] = validate_max_runs(body["maxRuns"])

    if not updates:
        raise InvalidRequestError("No valid fields to update")

    return updates


def build_new_schedule(schedule_id: str, user_id: str, body: dict, now: Optional[datetime] = None) -> VideoSchedule:
    """Validate a create body and build the schedule row, next run included."""
    name = body.get("name")
    if not isinstance(name, str) or not name.strip():
        raise InvalidRequestError("Name is required", error_code="name_required")

    prompt = validate_prompt(body.get("prompt"))
    frequency = validate_frequency(body.get("frequency"))
    now = now or datetime.utcnow()

    return VideoSchedule(
        id=schedule_id,
        user_id=user_id,
        name=name.strip(),
        prompt=prompt,
        model=body.get("model") or DEFAULT_SCHEDULE_MODEL,
        aspect_ratio=body.get("aspectRatio") or DEFAULT_ASPECT_RATIO,
        frequency=frequency,
        next_run_at=compute_next_run(frequency, now),
        max_runs=validate_max_runs(body.get("maxRuns")),
        created_at=now,
        updated_at=now,
    )
