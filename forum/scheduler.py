"""
Background purge of accounts that were never activated.

Runs inside the application process as a single asyncio task started and
stopped by the FastAPI lifespan.  Each pass uses its own transaction.
"""
import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from forum.config import settings
from forum.database import session_scope
from forum.services import user_service

logger = logging.getLogger(__name__)


class AccountCleanupTask:
    def __init__(
        self,
        interval_seconds: float = settings.ACCOUNT_CLEANUP_INTERVAL_SECONDS,
        session_factory: async_sessionmaker | None = None,
    ) -> None:
        self.interval_seconds = interval_seconds
        self.session_factory = session_factory
        self.running = False
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        if self.running:
            logger.warning("Account cleanup already running")
            return
        self.running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Account cleanup started, interval %ss", self.interval_seconds)

    async def stop(self) -> None:
        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Account cleanup stopped")

    async def run_once(self) -> int:
        async with session_scope(self.session_factory) as db:
            return await user_service.delete_unactivated_accounts(db)

    async def _loop(self) -> None:
        while self.running:
            try:
                await self.run_once()
            except Exception:
                logger.exception("Account cleanup pass failed")
            await asyncio.sleep(self.interval_seconds)


account_cleanup = AccountCleanupTask()
