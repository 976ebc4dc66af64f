"""Polling queue consumer.

The consumer periodically asks a QueueConsumerModule for due items and
processes each of them in its own transaction. A failed attempt is recorded
in a second, independent transaction where the retry policy decides whether
and when the item is attempted again.
"""

import threading
from datetime import datetime
from typing import Callable, Dict, Generic, List, Optional

import schedule

from queue_consumer.exceptions import (
    BookkeepingFailure,
    FetchFailure,
    InvalidConfiguration,
    ProcessingFailure,
)
from queue_consumer.logging import bind_item_context, get_module_logger
from queue_consumer.models import ItemOutcome, utc_now
from queue_consumer.module import ID, QueueConsumerModule
from queue_consumer.retry import RetryPolicy
from queue_consumer.transaction import TransactionManager

logger = get_module_logger()

_OUTCOME_STATS = {
    ItemOutcome.SUCCEEDED: "succeeded",
    ItemOutcome.VANISHED: "vanished",
    ItemOutcome.RETRIED: "retried",
    ItemOutcome.ABANDONED: "abandoned",
    ItemOutcome.BOOKKEEPING_FAILED: "bookkeeping_failures",
}


def _empty_stats() -> Dict[str, object]:
    stats: Dict[str, object] = {"fetched": 0, "fetch_failed": False}
    for key in _OUTCOME_STATS.values():
        stats[key] = 0
    return stats


class QueueConsumer(Generic[ID]):
    """Polls a queue on a fixed delay and processes due items one by one.

    The polling task runs on a single dedicated thread. The next cycle is
    scheduled polling_period_seconds after the previous one completed. A
    per-instance cycle lock keeps cycles from overlapping, including manual
    calls and a worker still finishing its item after a restart.

    Attributes:
        module: Collaborator that finds, loads and processes items
        retry_policy: Decides the next attempt time after a failure
        transaction_manager: Provides the transaction scope for each phase
        polled_items_limit: Maximum number of items fetched per cycle
        polling_period_seconds: Delay between the end of a cycle and the next
        clock: Returns the current timezone-aware time

    Example:
        consumer = QueueConsumer(
            module=InvoiceQueueModule(),
            retry_policy=LimitedRetryPolicy(5, FixedDelayRetryPolicy(timedelta(minutes=1))),
            transaction_manager=SQLAlchemyTransactionManager(Session),
            polled_items_limit=50,
            polling_period_seconds=30,
        )
        consumer.start()
        ...
        consumer.stop()
    """

    def __init__(
        self,
        module: QueueConsumerModule[ID],
        retry_policy: RetryPolicy,
        transaction_manager: TransactionManager,
        polled_items_limit: int,
        polling_period_seconds: int,
        clock: Optional[Callable[[], datetime]] = None,
        scheduler_tick_seconds: float = 1.0,
    ) -> None:
        if polled_items_limit < 1:
            raise InvalidConfiguration(
                f"Polled items limit cannot be less than 1, but is {polled_items_limit}"
            )
        if polling_period_seconds < 1:
            raise InvalidConfiguration(
                f"Polling period cannot be less than 1 second, but is {polling_period_seconds}"
            )
        if scheduler_tick_seconds <= 0:
            raise InvalidConfiguration(
                f"Scheduler tick must be positive, but is {scheduler_tick_seconds}"
            )
        if module is None:
            raise InvalidConfiguration("Queue consumer module is required")
        if retry_policy is None:
            raise InvalidConfiguration("Retry policy is required")
        if transaction_manager is None:
            raise InvalidConfiguration("Transaction manager is required")

        self.module = module
        self.retry_policy = retry_policy
        self.transaction_manager = transaction_manager
        self.polled_items_limit = polled_items_limit
        self.polling_period_seconds = polling_period_seconds
        self.clock = clock or utc_now
        self.scheduler_tick_seconds = scheduler_tick_seconds

        self._lifecycle_lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        self._scheduler: Optional[schedule.Scheduler] = None
        self._job: Optional[schedule.Job] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_requested = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._job is not None

    def start(self) -> None:
        """Start the recurring polling task. No-op if already running."""
        with self._lifecycle_lock:
            if self._job is not None:
                logger.debug("queue_processing_task_already_running")
                return

            logger.info(
                "queue_processing_task_starting",
                polling_period_seconds=self.polling_period_seconds,
                polled_items_limit=self.polled_items_limit,
            )
            # Fresh scheduler and event per run so a lingering thread from a
            # previous run can never pick up the new job.
            self._stop_requested = threading.Event()
            self._scheduler = schedule.Scheduler()
            self._job = self._scheduler.every(self.polling_period_seconds).seconds.do(
                self._run_cycle, self._stop_requested
            )
            self._thread = threading.Thread(
                target=self._run_scheduler,
                args=(self._scheduler, self._stop_requested),
                name="queue-consumer",
                daemon=True,
            )
            self._thread.start()

    def stop(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """Cancel the polling task. No-op if not running.

        A cycle in progress finishes the item it is working on and skips the
        rest of its batch.

        Args:
            wait: Block until the worker thread has exited
            timeout: Maximum seconds to wait for the worker thread
        """
        with self._lifecycle_lock:
            if self._job is None:
                return

            logger.info("queue_processing_task_stopping")
            if self._scheduler is not None:
                self._scheduler.cancel_job(self._job)
            self._job = None
            self._scheduler = None
            self._stop_requested.set()
            thread = self._thread
            self._thread = None

        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def __enter__(self) -> "QueueConsumer[ID]":
        self.start()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.stop()

    def _run_scheduler(
        self, scheduler: schedule.Scheduler, stop_requested: threading.Event
    ) -> None:
        while not stop_requested.is_set():
            scheduler.run_pending()
            stop_requested.wait(self.scheduler_tick_seconds)
        logger.info("queue_processing_task_stopped")

    def _run_cycle(self, stop_requested: threading.Event) -> None:
        try:
            self._process_queued_items(stop_requested)
        except Exception as e:
            # Keep the worker thread alive whatever happens in a cycle
            logger.error("queue_processing_cycle_failed", error=str(e), exc_info=True)

    def process_queued_items(self) -> Dict[str, object]:
        """Run one polling cycle.

        Scheduled cycles call this on the worker thread; it can also be
        called directly, e.g. to drain the queue on demand.

        Returns:
            Dictionary with cycle statistics:
                - fetched: Number of due items fetched
                - succeeded: Items processed successfully
                - vanished: Items that no longer existed
                - retried: Failed items scheduled for another attempt
                - abandoned: Failed items with no further attempt
                - bookkeeping_failures: Items whose failure could not be recorded
                - fetch_failed: Whether fetching due items failed
        """
        return self._process_queued_items(None)

    def _process_queued_items(
        self, stop_requested: Optional[threading.Event]
    ) -> Dict[str, object]:
        with self._cycle_lock:
            return self._process_due_items(stop_requested)

    def _process_due_items(
        self, stop_requested: Optional[threading.Event]
    ) -> Dict[str, object]:
        stats = _empty_stats()

        try:
            item_ids = self._fetch_due_item_ids(self.clock())
        except FetchFailure as e:
            logger.error(
                "queued_items_fetch_failed",
                error=str(e.__cause__ or e),
                exc_info=True,
            )
            stats["fetch_failed"] = True
            return stats

        if not item_ids:
            logger.debug("queued_items_none_due")
            return stats

        size = len(item_ids)
        stats["fetched"] = size
        logger.info("queued_items_fetched", count=size)

        for count, item_id in enumerate(item_ids, start=1):
            if stop_requested is not None and stop_requested.is_set():
                logger.info(
                    "queued_items_processing_interrupted",
                    remaining=size - count + 1,
                )
                break
            outcome = self.process_item(item_id, count, size)
            stats[_OUTCOME_STATS[outcome]] += 1

        logger.info("queued_items_processed", **stats)
        return stats

    def _fetch_due_item_ids(self, now: datetime) -> List[ID]:
        try:
            return list(self.module.find_due_item_ids(now, self.polled_items_limit))
        except Exception as e:
            raise FetchFailure(f"Error while fetching queued items: {e}") from e

    def process_item(self, item_id: ID, current_count: int, total_count: int) -> ItemOutcome:
        """Process one item and record the outcome of the attempt.

        Failures are never raised; they are converted into failure bookkeeping
        and, if that fails too, logged.

        Args:
            item_id: Item to process
            current_count: 1-based position of the item within the batch
            total_count: Number of items in the batch

        Returns:
            ItemOutcome describing what happened to the item
        """
        with bind_item_context(
            item_id=item_id, item_index=current_count, batch_size=total_count
        ):
            try:
                return self._process_item_under_transaction(
                    item_id, current_count, total_count
                )
            except ProcessingFailure as failure:
                logger.error(
                    "queued_item_processing_failed",
                    item_id=item_id,
                    error=str(failure.error),
                    exc_info=True,
                )
                try:
                    return self._register_processing_failure(failure)
                except BookkeepingFailure as e:
                    logger.error(
                        "queued_item_failure_bookkeeping_failed",
                        item_id=item_id,
                        error=str(e.error),
                        exc_info=True,
                    )
                    return ItemOutcome.BOOKKEEPING_FAILED

    def _process_item_under_transaction(
        self, item_id: ID, current_count: int, total_count: int
    ) -> ItemOutcome:
        try:
            with self.transaction_manager.transaction():
                queueing_state = self.module.process_item(
                    item_id, current_count, total_count
                )
                if queueing_state is None:
                    outcome = ItemOutcome.VANISHED
                else:
                    queueing_state.register_attempt_success(self.clock())
                    attempt_count = queueing_state.attempt_count
                    outcome = ItemOutcome.SUCCEEDED
        except Exception as e:
            raise ProcessingFailure(item_id, e) from e

        if outcome is ItemOutcome.VANISHED:
            logger.warning("queued_item_not_found_for_processing", item_id=item_id)
        else:
            logger.info(
                "queued_item_processed",
                item_id=item_id,
                attempt_count=attempt_count,
            )
        return outcome

    def _register_processing_failure(self, failure: ProcessingFailure) -> ItemOutcome:
        item_id = failure.item_id
        next_attempt_time = None
        attempt_count = None
        try:
            with self.transaction_manager.transaction():
                queueing_state = self.module.get_queueing_state(item_id)
                if queueing_state is None:
                    outcome = ItemOutcome.VANISHED
                else:
                    queueing_state.register_attempt_failure(self.clock(), failure.error)
                    attempt_count = queueing_state.attempt_count
                    next_attempt_time = self.retry_policy.calculate_next_attempt_time(
                        queueing_state.last_attempt_time, attempt_count
                    )
                    if next_attempt_time is not None:
                        queueing_state.schedule_next_attempt(next_attempt_time)
                        outcome = ItemOutcome.RETRIED
                    else:
                        outcome = ItemOutcome.ABANDONED
        except Exception as e:
            raise BookkeepingFailure(item_id, e) from e

        if outcome is ItemOutcome.VANISHED:
            logger.warning("queued_item_not_found_for_failure_bookkeeping", item_id=item_id)
        elif outcome is ItemOutcome.RETRIED:
            logger.info(
                "queued_item_retry_scheduled",
                item_id=item_id,
                attempt_count=attempt_count,
                next_attempt_time=next_attempt_time.isoformat(),
            )
        else:
            logger.warning(
                "queued_item_retry_abandoned",
                item_id=item_id,
                attempt_count=attempt_count,
            )
        return outcome
