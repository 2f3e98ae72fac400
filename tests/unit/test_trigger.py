"""Unit tests for the thread-created entry point."""

from __future__ import annotations

import asyncio
from unittest.mock import Mock

import pytest
from conftest import FORUM_ID, FakeSurface, make_thread

from license_autopublisher.licenses.store import LicenseDataStore
from license_autopublisher.workflow.dedup import TriggerDeduplicator
from license_autopublisher.workflow.state_machine import Done, FlowDependencies
from license_autopublisher.workflow.trigger import handle_thread_created, is_eligible


def test_eligibility_rules() -> None:
    assert is_eligible(make_thread(), ())
    assert is_eligible(make_thread(), {FORUM_ID})
    assert not is_eligible(make_thread(), {FORUM_ID + 1})
    assert not is_eligible(make_thread(parent_is_forum=False), ())
    assert not is_eligible(make_thread(owner_id=None), ())


@pytest.mark.asyncio
async def test_duplicate_triggers_produce_one_session(
    deps: FlowDependencies, surface: FakeSurface
) -> None:
    dedup = TriggerDeduplicator(300)
    thread = make_thread()

    first, second = await asyncio.gather(
        handle_thread_created(thread, deps, dedup),
        handle_thread_created(thread, deps, dedup),
    )

    assert {first, second} == {Done("guidance_timeout"), None}
    assert len(surface.sent) == 1


@pytest.mark.asyncio
async def test_ineligible_thread_is_not_admitted(
    deps: FlowDependencies, surface: FakeSurface
) -> None:
    dedup = TriggerDeduplicator(300)

    result = await handle_thread_created(
        make_thread(), deps, dedup, allowed_forum_channels={FORUM_ID + 1}
    )

    assert result is None
    assert len(dedup) == 0
    assert surface.sent == []


@pytest.mark.asyncio
async def test_session_failures_are_contained(
    deps: FlowDependencies, caplog: pytest.LogCaptureFixture
) -> None:
    broken = Mock(spec=LicenseDataStore)
    broken.preferences.get.side_effect = OSError("disk full")
    deps.store = broken

    result = await handle_thread_created(make_thread(), deps, TriggerDeduplicator(300))

    assert result is None
    assert "Auto-publish workflow aborted" in caplog.text
