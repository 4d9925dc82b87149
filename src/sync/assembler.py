# src/sync/assembler.py — v1
"""EntityAssembler — join a profile with its two satellites."""

from __future__ import annotations

import logging

from staffsync.core.errors import (
    MissingProfile,
    PartialFetchError,
    RecordNotFound,
    TransientIOError,
)
from staffsync.core.models import EntityRefs, EntityView, RawRecord
from staffsync.sync.fetcher import RecordFetcher

logger = logging.getLogger(__name__)


class EntityAssembler:
    """Fetch the three records of an entity concurrently into one EntityView.

    Failure policy:
      - profile missing or unreachable → MissingProfile
      - satellite missing              → absent slot (None)
      - satellite unreachable          → PartialFetchError (retry the entity,
                                         never index possibly-stale data)
    """

    def __init__(self, fetcher: RecordFetcher) -> None:
        self._fetcher = fetcher

    async def assemble(self, entity_id: str, refs: EntityRefs) -> EntityView:
        outcomes = await self._fetcher.fetch_many(refs.record_ids)

        profile = outcomes[refs.profile.record_id]
        if isinstance(profile, RecordNotFound):
            raise MissingProfile(
                f"Profile {refs.profile.record_id} not found", entity_id=entity_id
            ) from profile
        if isinstance(profile, TransientIOError):
            raise MissingProfile(
                f"Profile {refs.profile.record_id} unreachable: {profile}",
                entity_id=entity_id,
            ) from profile

        satellites: dict[str, RawRecord | None] = {}
        transient: list[str] = []
        for ref in (refs.satellite1, refs.satellite2):
            outcome = outcomes[ref.record_id]
            if isinstance(outcome, RawRecord):
                satellites[ref.kind] = outcome
            elif isinstance(outcome, RecordNotFound):
                logger.debug("Satellite %s absent for entity %s", ref.record_id, entity_id)
                satellites[ref.kind] = None
            else:
                transient.append(ref.record_id)

        if transient:
            raise PartialFetchError(entity_id, transient)

        return EntityView(
            entity_id=entity_id,
            refs=refs,
            profile=profile,
            satellite1=satellites["satellite1"],
            satellite2=satellites["satellite2"],
        )
