"""Per-session context shared by the engines, plus the async helpers they use."""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Dict, Optional

from .config import EngineSettings
from .record_store import RecordStore
from .state_store import StateStore

logger = logging.getLogger(__name__)


@dataclass
class AnalysisContext:
    """Record store, state store and settings for one session."""

    record_store: RecordStore
    state_store: StateStore
    settings: EngineSettings = field(default_factory=EngineSettings)

    @classmethod
    def from_settings(cls, settings: Optional[EngineSettings] = None) -> "AnalysisContext":
        settings = settings or EngineSettings.from_env()
        record_store = RecordStore(settings.records_path)
        record_store.load()
        return cls(record_store=record_store, state_store=StateStore(settings.state_dir), settings=settings)


class ReentrancyGuard:
    """Serializes calls into one engine.

    Waiters are admitted in arrival order. A fresh lock is made whenever the
    guard is used from a different event loop, so one engine can be driven by
    several ``asyncio.run`` calls.
    """

    def __init__(self, name: str):
        self.name = name
        self._lock: Optional[asyncio.Lock] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _current_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or self._loop is not loop:
            self._lock = asyncio.Lock()
            self._loop = loop
        return self._lock

    @property
    def busy(self) -> bool:
        return self._lock is not None and self._lock.locked()

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        lock = self._current_lock()
        if lock.locked():
            logger.debug(f"{self.name}: waiting for the running call to finish")
        async with lock:
            yield


async def run_with_timeout(awaitable: Awaitable[Dict[str, Any]], timeout: Optional[float], label: str = "analysis") -> Dict[str, Any]:
    """Await *awaitable*, giving up on waiting after *timeout* seconds.

    The computation itself is shielded and keeps running; the caller just
    gets a failure result instead of the outcome.
    """
    if timeout is None:
        return await awaitable

    task = asyncio.ensure_future(awaitable)
    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{label} did not finish within {timeout}s; still running in the background")
        return {"success": False, "message": f"{label} timed out after {timeout} seconds"}
