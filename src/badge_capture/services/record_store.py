"""
badge_capture.services.record_store

Persists accepted submissions into the key-value collaborator.
"""

from __future__ import annotations

import json

from badge_capture.collaborators.kv import KeyValueStore
from badge_capture.submission.models import SubmissionRecord

ONE_YEAR_SECONDS = 365 * 24 * 3600


class RecordStore:
    def __init__(self, store: KeyValueStore, *, ttl_seconds: int = ONE_YEAR_SECONDS) -> None:
        self._store = store
        self._ttl_seconds = ttl_seconds

    async def persist(self, record: SubmissionRecord) -> str:
        # Same sessionId → same key → the later write replaces the earlier one.
        await self._store.put(
            record.storage_key,
            json.dumps(record.to_storage()),
            ttl_seconds=self._ttl_seconds,
        )
        return record.storage_key
