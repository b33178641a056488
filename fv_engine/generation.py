"""Session epochs and commit guards for asynchronous results.

A :class:`SessionEpoch` is shared by every component of one view-model; it is
advanced synchronously whenever the selected form (or table/widget) changes.
Each component owns a :class:`CommitGuard` that issues a :class:`Ticket` per
operation and only lets a result commit when its ticket still belongs to the
current session and is newer than the last committed ticket.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Hashable

logger = logging.getLogger(__name__)


class SessionEpoch:
    """Monotonic counter identifying the active session."""

    def __init__(self) -> None:
        self._epoch = 0
        self._owner: Hashable | None = None

    @property
    def current(self) -> int:
        return self._epoch

    @property
    def owner(self) -> Hashable | None:
        """Identity of the session (e.g. the selected form id)."""
        return self._owner

    def advance(self, owner: Hashable | None = None) -> int:
        self._epoch += 1
        self._owner = owner
        logger.debug("Session epoch advanced to %d (owner=%r)", self._epoch, owner)
        return self._epoch

    def is_current(self, epoch: int) -> bool:
        return epoch == self._epoch


@dataclass(frozen=True)
class Ticket:
    epoch: int
    generation: int


class CommitGuard:
    """Rejects results from superseded sessions or older operations."""

    def __init__(self, epoch: SessionEpoch, name: str = "guard") -> None:
        self._epoch = epoch
        self._name = name
        self._counter = itertools.count(1)
        self._issued = 0
        self._committed = 0

    @property
    def epoch(self) -> SessionEpoch:
        return self._epoch

    def issue(self) -> Ticket:
        """Stamp a new operation; call before awaiting any fetch."""
        self._issued = next(self._counter)
        return Ticket(epoch=self._epoch.current, generation=self._issued)

    def invalidate(self) -> None:
        """Reject every ticket issued so far, e.g. after a context change."""
        self._committed = max(self._committed, self._issued)

    def is_live(self, ticket: Ticket) -> bool:
        """True while the ticket's session is still the active one."""
        return self._epoch.is_current(ticket.epoch)

    def can_commit(self, ticket: Ticket) -> bool:
        return self.is_live(ticket) and ticket.generation > self._committed

    def try_commit(self, ticket: Ticket) -> bool:
        """Record the ticket as committed if it is still admissible.

        Must be evaluated when the result arrives, never at dispatch time.
        """
        if not self.can_commit(ticket):
            logger.debug(
                "%s dropped stale result (ticket=%s, epoch=%d, committed=%d)",
                self._name,
                ticket,
                self._epoch.current,
                self._committed,
            )
            return False
        self._committed = ticket.generation
        return True
