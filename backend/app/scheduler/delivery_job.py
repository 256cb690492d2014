"""
Delivery outbox + periodic sweep.

emit() enqueues a bounded batch after its transaction commits; the batch runs on a small shared
executor in its own session and never reports back to the producer (errors are logged, not raised).
The scheduler also runs run_delivery_sweep_job every DELIVERY_POLL_SECONDS so retries and
batches that were never enqueued still go out. Both paths claim rows before sending.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor

from sqlalchemy.orm import sessionmaker

from app.config import settings
from app.core.constants import DELIVERY_DEFAULT_BATCH
from app.db.session import SessionLocal, session_scope
from app.services.email_notify import Mailer
from app.services.notifications.delivery import process_pending_deliveries

logger = logging.getLogger(__name__)


class DeliveryOutbox:
    def __init__(
        self,
        session_factory: sessionmaker = SessionLocal,
        mailer: Mailer | None = None,
        max_workers: int | None = None,
    ):
        self._session_factory = session_factory
        self._mailer = mailer
        self._max_workers = max_workers or settings.delivery_workers
        self._executor: ThreadPoolExecutor | None = None
        self._lock = threading.Lock()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="delivery_outbox",
                )
            return self._executor

    def enqueue(self, limit: int) -> Future:
        """Queue one batch; returns immediately."""
        return self._get_executor().submit(self.drain, limit)

    def drain(self, limit: int) -> dict | None:
        """Run one batch in a fresh session. Never raises."""
        try:
            with session_scope(self._session_factory) as db:
                return process_pending_deliveries(db, limit, mailer=self._mailer)
        except Exception as e:
            logger.exception("Delivery batch (limit=%s) failed: %s", limit, e)
            return None

    def shutdown(self, wait: bool = False) -> None:
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=wait)
                self._executor = None


_outbox: DeliveryOutbox | None = None
_outbox_lock = threading.Lock()


def get_outbox() -> DeliveryOutbox:
    global _outbox
    with _outbox_lock:
        if _outbox is None:
            _outbox = DeliveryOutbox()
        return _outbox


def run_delivery_sweep_job() -> None:
    """Periodic sweep (APScheduler interval job)."""
    result = get_outbox().drain(DELIVERY_DEFAULT_BATCH)
    if result and result["processed"]:
        logger.info("Delivery sweep: %s processed", result["processed"])
