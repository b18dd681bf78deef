"""Email outbox: enqueue returns immediately, delivery runs on the APScheduler thread pool with retry/backoff."""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable

from rollcall.config import Settings
from rollcall.services.notifications import EmailMessage, send_email
from rollcall.utils.timezone import now_utc

logger = logging.getLogger(__name__)


def retry_delay(attempt: int, backoff_seconds: int) -> int:
    """Seconds to wait after failed attempt number `attempt` (1-based)."""
    return backoff_seconds * 2 ** (attempt - 1)


class EmailOutbox:
    def __init__(
        self,
        settings: Settings,
        scheduler,
        transport: Callable[[Settings, EmailMessage], bool] = send_email,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.settings = settings
        self.scheduler = scheduler
        self.transport = transport
        self.clock = clock

    def enqueue(self, message: EmailMessage) -> None:
        """Schedule the first delivery attempt. Never raises."""
        try:
            self._schedule(message, attempt=1, delay_seconds=0)
        except Exception:
            logger.exception("Could not enqueue email to=%s subject=%s", message.to, message.subject)

    def _schedule(self, message: EmailMessage, attempt: int, delay_seconds: int) -> None:
        self.scheduler.add_job(
            self.deliver,
            "date",
            run_date=self.clock() + timedelta(seconds=delay_seconds),
            args=[message, attempt],
            id=f"email-{uuid.uuid4().hex}",
            misfire_grace_time=None,
        )

    def deliver(self, message: EmailMessage, attempt: int = 1) -> bool:
        """One delivery attempt; reschedules itself on failure until email_max_attempts."""
        try:
            ok = self.transport(self.settings, message)
        except Exception:
            logger.exception("Email transport raised: to=%s attempt=%d", message.to, attempt)
            ok = False
        if ok:
            return True
        max_attempts = self.settings.email_max_attempts
        if attempt >= max_attempts:
            logger.error("Giving up on email to=%s subject=%s after %d attempt(s)", message.to, message.subject, attempt)
            return False
        delay = retry_delay(attempt, self.settings.email_retry_backoff_seconds)
        logger.warning("Email to=%s failed (attempt %d/%d), retrying in %ds", message.to, attempt, max_attempts, delay)
        self._schedule(message, attempt=attempt + 1, delay_seconds=delay)
        return False
