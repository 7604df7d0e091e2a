"""Daily generation quota - an in-memory reference gate for the service.

Each account may run DAILY_LIMIT generations per UTC day; a small set of
internal test accounts is exempt.  ``reserve`` checks, resets on a new day
and increments under one per-account lock, so two concurrent requests from
the same account cannot both take the last slot.  A failed generation hands
its slot back through ``complete``.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable

from slidetheory.schema.models import Identity

log = logging.getLogger(__name__)

DAILY_LIMIT = 5
UNLIMITED_REMAINING = 999
TEST_EMAILS = (
    "test@slidetheory.com",
    "admin@slidetheory.com",
    "demo@slidetheory.com",
)


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    remaining: int          # slots left after this reservation
    exempt: bool = False


@dataclass
class _Usage:
    day: date
    count: int = 0


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class DailyQuota:
    """Per-account daily counter with atomic check-and-increment.

    Parameters
    ----------
    limit : int
        Generations allowed per account per day.
    exempt_emails : iterable of str
        Accounts that are never limited (compared case-insensitively).
    clock : callable, optional
        Returns today's date; defaults to the UTC calendar date.

    Counters live in process memory, one entry per account seen, and are
    never evicted; a day change replaces an account's entry.  Use a
    shared store behind the QuotaGate protocol when accounts are unbounded.
    """

    def __init__(self, limit: int = DAILY_LIMIT,
                 exempt_emails=TEST_EMAILS,
                 clock: Callable[[], date] | None = None) -> None:
        self.limit = limit
        self.exempt_emails = frozenset(e.lower() for e in exempt_emails)
        self._clock = clock or _utc_today
        self._usage: dict[str, _Usage] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._registry_lock:
            return self._locks.setdefault(user_id, threading.Lock())

    def is_exempt(self, identity: Identity) -> bool:
        return identity.email.lower() in self.exempt_emails

    def _current(self, user_id: str) -> _Usage:
        """Usage record for today, reset when the stored day has passed."""
        today = self._clock()
        usage = self._usage.get(user_id)
        if usage is None or usage.day != today:
            usage = _Usage(day=today)
            self._usage[user_id] = usage
        return usage

    def reserve(self, identity: Identity) -> QuotaDecision:
        """Take one generation slot if the account has one left today."""
        if self.is_exempt(identity):
            return QuotaDecision(True, UNLIMITED_REMAINING, exempt=True)
        with self._lock_for(identity.user_id):
            usage = self._current(identity.user_id)
            if usage.count >= self.limit:
                log.info("Daily limit reached for %s", identity.user_id)
                return QuotaDecision(False, 0)
            usage.count += 1
            return QuotaDecision(True, self.limit - usage.count)

    def complete(self, identity: Identity, succeeded: bool) -> None:
        """Settle a reservation; a failed generation gives its slot back."""
        if succeeded or self.is_exempt(identity):
            return
        with self._lock_for(identity.user_id):
            usage = self._usage.get(identity.user_id)
            if usage is not None and usage.day == self._clock() and usage.count > 0:
                usage.count -= 1

    def used(self, identity: Identity) -> int:
        """Generations counted today for an account."""
        with self._lock_for(identity.user_id):
            return self._current(identity.user_id).count
