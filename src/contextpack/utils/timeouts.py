"""Bounded waits for composite operations."""

import asyncio
import logging
from typing import Awaitable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_timeout(awaitable: Awaitable[T], seconds: float, default: T, label: str = "") -> T:
    """Await ``awaitable`` for at most ``seconds``, resolving to ``default`` on expiry.

    Only the timeout is absorbed; other exceptions propagate.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        logger.warning(f"{label or 'operation'} timed out after {seconds:.1f}s, using default")
        return default
