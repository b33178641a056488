"""Tests for session epochs and commit guards."""

from __future__ import annotations

import pytest

from fv_engine.generation import CommitGuard, SessionEpoch


pytestmark = pytest.mark.unit_engine


def test_newer_ticket_supersedes_older() -> None:
    guard = CommitGuard(SessionEpoch())
    older = guard.issue()
    newer = guard.issue()

    assert guard.try_commit(newer) is True
    assert guard.try_commit(older) is False


def test_epoch_advance_rejects_previous_session() -> None:
    epoch = SessionEpoch()
    guard = CommitGuard(epoch)
    ticket = guard.issue()
    epoch.advance("form-b")

    assert guard.is_live(ticket) is False
    assert guard.try_commit(ticket) is False
    assert epoch.owner == "form-b"


def test_invalidate_rejects_outstanding_tickets_only() -> None:
    guard = CommitGuard(SessionEpoch())
    outstanding = guard.issue()
    guard.invalidate()
    fresh = guard.issue()

    assert guard.can_commit(outstanding) is False
    assert guard.try_commit(fresh) is True
