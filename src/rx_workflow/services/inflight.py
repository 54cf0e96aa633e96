"""In-flight request tracking keyed by resource."""

import itertools
import logging
from contextlib import contextmanager
from typing import Hashable, Iterator

from rx_workflow.exceptions import TransitionInProgress

logger = logging.getLogger(__name__)


class TransitionGuard:
    """Allows at most one status-changing request per prescription at a time."""

    def __init__(self):
        self._busy: set[int] = set()

    def is_busy(self, prescription_id: int) -> bool:
        return prescription_id in self._busy

    @contextmanager
    def hold(self, prescription_id: int) -> Iterator[None]:
        if prescription_id in self._busy:
            raise TransitionInProgress(
                f"Prescription {prescription_id} already has a status change in progress.",
                detail={"prescription_id": prescription_id},
            )
        self._busy.add(prescription_id)
        try:
            yield
        finally:
            self._busy.discard(prescription_id)


class RequestTickets:
    """
    Orders completions of reads for the same resource.

    Each request takes a ticket before it is sent. When it completes, its
    result may be applied only if no request issued after it has already
    been applied for the same key.
    """

    def __init__(self):
        self._counter = itertools.count(1)
        self._applied: dict[Hashable, int] = {}

    def issue(self) -> int:
        return next(self._counter)

    def accept(self, key: Hashable, ticket: int) -> bool:
        if ticket <= self._applied.get(key, 0):
            logger.debug("Discarding stale completion for %s (ticket %s)", key, ticket)
            return False
        self._applied[key] = ticket
        return True
