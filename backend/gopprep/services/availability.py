"""
Availability gate - decides whether an exam can be started right now.

Exam status is derived here from (status, scheduled_time, expires_at, now)
at read time and is never written back to the exam document.
"""

from datetime import datetime
from typing import Iterable, Optional

from ..errors import NotAvailableError
from ..models import Exam, ExamStatus
from ..utils import ensure_utc

STARTABLE_STATUSES = (ExamStatus.SCHEDULED.value, ExamStatus.ACTIVE.value)


def derive_exam_status(exam: Exam, now: datetime) -> str:
    """Lifecycle status of an exam at ``now``."""
    if exam.status == ExamStatus.DRAFT:
        return ExamStatus.DRAFT.value

    now = ensure_utc(now)
    if now < exam.scheduled_time:
        return ExamStatus.SCHEDULED.value
    if exam.expires_at is not None and exam.expires_at < now:
        return ExamStatus.COMPLETED.value
    return ExamStatus.ACTIVE.value


class AvailabilityGate:
    """Time window and category eligibility check for starting an exam."""

    def check(
        self,
        exam: Exam,
        now: datetime,
        categories: Optional[Iterable[str]] = None
    ) -> None:
        """
        Raise ``NotAvailableError`` if the exam cannot be started at ``now``.

        Args:
            exam: Exam definition
            now: Current time
            categories: The user's exam preparations; ``None`` skips the check

        The rejection reason is one of ``not_started``, ``expired``,
        ``category`` or ``unpublished``.
        """
        now = ensure_utc(now)

        if categories is not None and exam.category not in set(categories):
            raise NotAvailableError(NotAvailableError.CATEGORY)

        if exam.status == ExamStatus.DRAFT:
            raise NotAvailableError(NotAvailableError.UNPUBLISHED)

        if exam.scheduled_time > now:
            raise NotAvailableError(NotAvailableError.NOT_STARTED)

        # No expiry means the exam stays available indefinitely
        if exam.expires_at is not None and exam.expires_at < now:
            raise NotAvailableError(NotAvailableError.EXPIRED)

    def is_available(
        self,
        exam: Exam,
        now: datetime,
        categories: Optional[Iterable[str]] = None
    ) -> bool:
        try:
            self.check(exam, now, categories)
        except NotAvailableError:
            return False
        return True
