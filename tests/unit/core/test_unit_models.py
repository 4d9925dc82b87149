# tests/unit/core/test_unit_models.py — v1
"""Tests for core/models.py and core/errors.py."""

from __future__ import annotations

from staffsync.core.errors import (
    ChangeDecodeError,
    EmbeddingUnavailable,
    FeedDisconnected,
    IndexWriteError,
    MissingProfile,
    PartialFetchError,
    RecordNotFound,
    SyncError,
    TransientIOError,
)
from staffsync.core.models import (
    ABSENT_REVISION,
    DerivedDocument,
    EntityView,
    RawRecord,
)


class TestEntityView:
    def test_observed_revisions_with_absent(self, resolver):
        view = EntityView(
            entity_id="1",
            refs=resolver.refs_for("1"),
            profile=RawRecord(record_id="employee_1_1", revision="3-a"),
            satellite2=RawRecord(record_id="leave_1", revision="1-b"),
        )
        assert view.observed_revisions() == ["3-a", ABSENT_REVISION, "1-b"]


class TestDerivedDocument:
    def test_revision_key(self):
        doc = DerivedDocument(
            entity_id="1",
            text="t",
            vector=[0.1],
            record_ids=["employee_1_1", "additionalinfo_1_1", "leave_1"],
            source_revisions=["1-a", "<absent>", "2-c"],
        )
        assert doc.revision_key == "1-a|<absent>|2-c"


class TestErrors:
    def test_hierarchy(self):
        for cls in (
            RecordNotFound, TransientIOError, MissingProfile, PartialFetchError,
            EmbeddingUnavailable, IndexWriteError, FeedDisconnected, ChangeDecodeError,
        ):
            assert issubclass(cls, SyncError)

    def test_record_not_found(self):
        e = RecordNotFound("leave_9")
        assert e.record_id == "leave_9"
        assert "leave_9" in str(e)

    def test_partial_fetch(self):
        e = PartialFetchError("9", ["leave_9"])
        assert e.entity_id == "9"
        assert e.record_ids == ["leave_9"]
        assert "leave_9" in str(e)
