"""Owner-scoped record repository.

``OwnedRecords`` is the single place where the authorization guard meets the
store.  Routers never call a ``DocumentCollection`` directly for owned data:

* ``create`` stamps ``user_id`` from the verified principal and drops any
  client-supplied owner, id or timestamp keys;
* ``list`` / ``count`` are constrained by ``scope_to_owner``;
* ``get`` / ``update`` / ``delete`` fetch by id, then run
  ``authorize_record_access`` before touching the record.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from lunara.auth.guard import OWNER_FIELD, authorize_record_access, scope_to_owner
from lunara.auth.identity import Principal
from lunara.errors import NotFoundError
from lunara.services.store import Document, DocumentCollection, KeyedDocuments, Store

logger = logging.getLogger("lunara.records")

# Keys a client may never set on a stored record.
PROTECTED_FIELDS = frozenset({"id", "_id", OWNER_FIELD, "created_at", "updated_at"})


def _strip_protected(data: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}


class OwnedRecords:
    """Guarded CRUD over one collection."""

    def __init__(self, collection: DocumentCollection, resource: str) -> None:
        self._collection = collection
        self.resource = resource

    @property
    def collection(self) -> DocumentCollection:
        return self._collection

    async def create(self, principal: Principal, data: Mapping[str, Any]) -> Document:
        document = _strip_protected(data)
        document[OWNER_FIELD] = principal.principal_id
        record = await self._collection.insert(document)
        logger.info(
            "Created %s %s for %s",
            self.resource.lower(), record.get("id"), principal.principal_id,
        )
        return record

    async def list(
        self,
        principal: Principal,
        *,
        limit: int,
        filters: Mapping[str, Any] | None = None,
    ) -> list[Document]:
        return await self._collection.list(
            scope_to_owner(principal), limit=limit, filters=filters
        )

    async def count(self, principal: Principal) -> int:
        return await self._collection.count(scope_to_owner(principal))

    async def get(self, principal: Principal, record_id: str) -> Document:
        record = await self._collection.get(record_id)
        return authorize_record_access(principal, record, self.resource)

    async def update(
        self, principal: Principal, record_id: str, changes: Mapping[str, Any]
    ) -> Document:
        await self.get(principal, record_id)
        updated = await self._collection.update(record_id, _strip_protected(changes))
        if updated is None:
            # deleted between the ownership check and the write
            raise NotFoundError(f"{self.resource} not found")
        return updated

    async def delete(self, principal: Principal, record_id: str) -> None:
        await self.get(principal, record_id)
        if not await self._collection.delete(record_id):
            raise NotFoundError(f"{self.resource} not found")
        logger.info(
            "Deleted %s %s for %s",
            self.resource.lower(), record_id, principal.principal_id,
        )


class OwnedDocument:
    """The caller's own singleton document (profile, settings)."""

    def __init__(self, documents: KeyedDocuments) -> None:
        self._documents = documents

    async def get(self, principal: Principal) -> Document | None:
        return await self._documents.get(scope_to_owner(principal))

    async def merge(self, principal: Principal, data: Mapping[str, Any]) -> Document:
        return await self._documents.merge(scope_to_owner(principal), _strip_protected(data))


@dataclass
class Repositories:
    """Guarded access to every collection, built once from the store."""

    cycles: OwnedRecords
    nutrition_logs: OwnedRecords
    fitness_logs: OwnedRecords
    mental_health_logs: OwnedRecords
    insights: OwnedRecords
    profiles: OwnedDocument
    settings: OwnedDocument
    store: Store

    @classmethod
    def from_store(cls, store: Store) -> "Repositories":
        return cls(
            cycles=OwnedRecords(store.cycles, "Cycle"),
            nutrition_logs=OwnedRecords(store.nutrition_logs, "Nutrition log"),
            fitness_logs=OwnedRecords(store.fitness_logs, "Fitness log"),
            mental_health_logs=OwnedRecords(store.mental_health_logs, "Mental health log"),
            insights=OwnedRecords(store.insights, "Insight"),
            profiles=OwnedDocument(store.profiles),
            settings=OwnedDocument(store.settings),
            store=store,
        )

    async def purge_owner(self, principal: Principal) -> int:
        """Delete everything the principal owns, in one all-or-nothing step."""
        return await self.store.purge_owner(scope_to_owner(principal))
