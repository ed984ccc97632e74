"""
Best-effort execution for bookkeeping that must not change an outcome.

Job-row writes, chat message updates and artifact uploads that happen after
a generation result is already known go through `best_effort()`. Failures
are logged and returned as data so the caller can branch on them without
try/except noise.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Optional

logger = logging.getLogger(__name__)


@dataclass
class BestEffort:
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None


async def best_effort(description: str, awaitable: Awaitable[Any]) -> BestEffort:
    """Await `awaitable`, logging and capturing any Exception it raises."""
    try:
        return BestEffort(ok=True, value=await awaitable)
    except Exception as e:
        logger.error(f"Failed to {description}: {e}")
        return BestEffort(ok=False, error=e)
