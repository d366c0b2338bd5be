"""
Batch job base module.

Runs independent, idempotent work items with bounded parallelism. Each
item gets its own session and transaction; an item failure is logged and
counted without touching the rest of the batch.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.services.events import EventBus, event_bus
from app.services.settings_service import PayoutConfig
from app.utils.exceptions import is_item_level, must_abort_run


# Item errors kept on the report
MAX_REPORTED_ERRORS = 20


@dataclass
class BatchReport:
    """Counters of one batch run."""

    total_items: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    total_amount: Decimal = Decimal("0")
    errors: list[str] = field(default_factory=list)

    def add_error(self, item_id: int, error: Exception) -> None:
        self.failed += 1
        if len(self.errors) < MAX_REPORTED_ERRORS:
            self.errors.append(f"{item_id}: {type(error).__name__}: {error}")


class BatchJobHandler:
    """
    Base class for scheduled batch jobs.

    Subclasses implement is_enabled, list_item_ids and process_item.
    process_item returns the amount paid, or None when the item was skipped.
    """

    item_name = "item"

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        events: EventBus | None = None,
    ) -> None:
        """
        Initialize handler.

        Args:
            session_maker: Factory for per-item sessions
            events: Event bus for item events
        """
        self.session_maker = session_maker
        self.events = events or event_bus
        self.logger = logger.bind(service=self.__class__.__name__)

    def is_enabled(self, config: PayoutConfig) -> bool:
        raise NotImplementedError

    async def list_item_ids(self, now: datetime) -> list[int]:
        raise NotImplementedError

    async def process_item(
        self, item_id: int, config: PayoutConfig, now: datetime
    ) -> Decimal | None:
        raise NotImplementedError

    async def run(
        self,
        config: PayoutConfig,
        now: datetime,
        report: BatchReport,
        concurrency: int = 1,
    ) -> BatchReport:
        """
        Process every due item.

        Args:
            config: Settings snapshot for this run
            now: Run time
            report: Report updated in place (kept on timeout)
            concurrency: Items processed in parallel

        Returns:
            The report

        Raises:
            OperationalError / InterfaceError: Storage unavailable
        """
        if not self.is_enabled(config):
            self.logger.info(f"{self.__class__.__name__} disabled by settings")
            return report

        item_ids = await self.list_item_ids(now)
        report.total_items = len(item_ids)
        self.logger.info(f"Processing {len(item_ids)} {self.item_name}s")

        semaphore = asyncio.Semaphore(max(concurrency, 1))

        async def guarded(item_id: int) -> None:
            async with semaphore:
                await self._process_one(item_id, config, now, report)

        tasks = [asyncio.create_task(guarded(item_id)) for item_id in item_ids]
        try:
            await asyncio.gather(*tasks)
        finally:
            # No item outlives the run that started it
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
                self.logger.warning(
                    f"{self.__class__.__name__} cancelled {len(pending)} "
                    f"unfinished {self.item_name}s"
                )

        self.logger.info(
            f"{self.__class__.__name__} done: processed={report.processed}, "
            f"skipped={report.skipped}, failed={report.failed}, "
            f"total={report.total_amount}"
        )
        return report

    async def _process_one(
        self,
        item_id: int,
        config: PayoutConfig,
        now: datetime,
        report: BatchReport,
    ) -> None:
        try:
            amount = await self.process_item(item_id, config, now)
        except Exception as e:
            if must_abort_run(e):
                raise
            if is_item_level(e):
                self.logger.error(
                    f"Failed to process {self.item_name} {item_id}: "
                    f"{type(e).__name__}: {e}"
                )
            else:
                self.logger.exception(
                    f"Unexpected error processing {self.item_name} {item_id}: {e}"
                )
            report.add_error(item_id, e)
            return

        if amount is None:
            report.skipped += 1
        else:
            report.processed += 1
            report.total_amount += amount
