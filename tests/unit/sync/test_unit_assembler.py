# tests/unit/sync/test_unit_assembler.py — v1
"""Tests for sync/assembler.py — joining profile and satellites."""

from __future__ import annotations

import pytest

from staffsync.core.errors import MissingProfile, PartialFetchError, RecordNotFound, TransientIOError
from staffsync.core.retry import RetryConfig
from staffsync.sync.assembler import EntityAssembler
from staffsync.sync.fetcher import RecordFetcher


@pytest.fixture
def assembler(document_store, no_sleep) -> EntityAssembler:
    return EntityAssembler(
        RecordFetcher(
            document_store,
            retry=RetryConfig(max_retries=1, base_delay_s=0.01, jitter=False),
            sleep=no_sleep,
        )
    )


class TestAssemble:
    @pytest.mark.asyncio
    async def test_full_entity(self, assembler, seed_employee, resolver):
        seed_employee(42)
        view = await assembler.assemble("42", resolver.refs_for("42"))
        assert view.entity_id == "42"
        assert view.profile.record_id == "employee_1_42"
        assert view.satellite1 is not None and view.satellite1.record_id == "additionalinfo_1_42"
        assert view.satellite2 is not None and view.satellite2.record_id == "leave_42"

    @pytest.mark.asyncio
    async def test_missing_satellites_are_absent(self, assembler, seed_employee, resolver):
        seed_employee(42, with_additional=False, with_leaves=False)
        view = await assembler.assemble("42", resolver.refs_for("42"))
        assert view.satellite1 is None
        assert view.satellite2 is None
        assert view.observed_revisions()[1:] == ["<absent>", "<absent>"]

    @pytest.mark.asyncio
    async def test_missing_profile(self, assembler, document_store, resolver):
        document_store.put("leave_42", {"leaves": []})
        with pytest.raises(MissingProfile) as exc_info:
            await assembler.assemble("42", resolver.refs_for("42"))
        assert exc_info.value.entity_id == "42"
        assert isinstance(exc_info.value.__cause__, RecordNotFound)

    @pytest.mark.asyncio
    async def test_unreachable_profile(self, assembler, seed_employee, document_store, resolver):
        seed_employee(42)
        document_store.unreachable.add("employee_1_42")
        with pytest.raises(MissingProfile) as exc_info:
            await assembler.assemble("42", resolver.refs_for("42"))
        assert isinstance(exc_info.value.__cause__, TransientIOError)

    @pytest.mark.asyncio
    async def test_unreachable_satellite(self, assembler, seed_employee, document_store, resolver):
        seed_employee(42)
        document_store.unreachable.add("leave_42")
        with pytest.raises(PartialFetchError) as exc_info:
            await assembler.assemble("42", resolver.refs_for("42"))
        assert exc_info.value.record_ids == ["leave_42"]

    @pytest.mark.asyncio
    async def test_flaky_satellite_recovers(self, assembler, seed_employee, document_store, resolver):
        seed_employee(42)
        document_store.transient_failures["additionalinfo_1_42"] = 1
        view = await assembler.assemble("42", resolver.refs_for("42"))
        assert view.satellite1 is not None
