# src/alchemist/validator/sequencing.py
from __future__ import annotations

import logging
import threading

from alchemist.schemas.models import Finding

logger = logging.getLogger(__name__)


class PassSequencer:
    """
    @brief
    Keeps the most recently *issued* validation pass authoritative.

    @details
    Passes may finish out of order when several run concurrently. Each pass
    takes a ticket before it starts; a completed pass is accepted only if
    its ticket is newer than the last accepted one, so a slow earlier pass
    can never overwrite the result of a later edit.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._issued = 0
        self._accepted = 0
        self._findings: list[Finding] = []

    def issue(self) -> int:
        """Reserve the next ticket; call before starting a pass."""
        with self._lock:
            self._issued += 1
            return self._issued

    def complete(self, ticket: int, findings: list[Finding]) -> bool:
        """
        @brief
        Offer the result of the pass holding `ticket`.

        @returns
            True if the result became the latest one, False if it was stale.
        """
        with self._lock:
            if ticket <= self._accepted:
                logger.debug(
                    "Discarding stale validation pass %d (latest %d)", ticket, self._accepted
                )
                return False
            self._accepted = ticket
            self._findings = list(findings)
            return True

    @property
    def latest(self) -> list[Finding]:
        with self._lock:
            return list(self._findings)

    @property
    def latest_ticket(self) -> int:
        with self._lock:
            return self._accepted
