"""Document store: one collection per record type.

``DocumentCollection`` is the narrow interface the record repositories use:
insert with a generated id, get by id, owner-scoped list / count / bulk
delete, update by id and delete by id.  ``get`` looks up by id alone and
returns ``None`` when nothing matches; the ownership decision belongs to the
guard, not the store.

``PostgresCollection`` implements it over one table per collection.  Column
names come from a fixed ``TableSpec``, never from request data.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import asyncpg

from lunara.auth.guard import OwnerFilter
from lunara.services.database import Database

logger = logging.getLogger("lunara.store")

Document = dict[str, Any]


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------


class DocumentCollection(ABC):
    """A collection of owned documents keyed by a store-generated id."""

    name: str
    sort_field: str

    @abstractmethod
    async def insert(self, document: Mapping[str, Any]) -> Document:
        """Store ``document`` (which already carries ``user_id``); return it with its id."""

    @abstractmethod
    async def get(self, record_id: str) -> Document | None:
        """Fetch by id only.  ``None`` is the store's "not found" signal."""

    @abstractmethod
    async def list(
        self,
        owner: OwnerFilter,
        *,
        limit: int,
        descending: bool = True,
        filters: Mapping[str, Any] | None = None,
    ) -> list[Document]:
        """Owner-scoped documents ordered by ``sort_field``."""

    @abstractmethod
    async def count(self, owner: OwnerFilter) -> int: ...

    @abstractmethod
    async def update(
        self, record_id: str, changes: Mapping[str, Any]
    ) -> Document | None: ...

    @abstractmethod
    async def delete(self, record_id: str) -> bool: ...

    @abstractmethod
    async def delete_many(self, owner: OwnerFilter) -> int: ...


class KeyedDocuments(ABC):
    """One document per owner (profile, settings)."""

    name: str

    @abstractmethod
    async def get(self, owner: OwnerFilter) -> Document | None: ...

    @abstractmethod
    async def merge(self, owner: OwnerFilter, data: Mapping[str, Any]) -> Document:
        """Shallow-merge ``data`` into the owner's document, creating it if needed."""

    @abstractmethod
    async def delete(self, owner: OwnerFilter) -> bool: ...


@dataclass
class Store(ABC):
    """Every collection the API reads or writes."""

    cycles: DocumentCollection
    nutrition_logs: DocumentCollection
    fitness_logs: DocumentCollection
    mental_health_logs: DocumentCollection
    insights: DocumentCollection
    profiles: KeyedDocuments
    settings: KeyedDocuments

    def owned_collections(self) -> list[DocumentCollection]:
        return [
            self.cycles,
            self.nutrition_logs,
            self.fitness_logs,
            self.mental_health_logs,
            self.insights,
        ]

    @abstractmethod
    async def purge_owner(self, owner: OwnerFilter) -> int:
        """Delete everything ``owner`` has stored, in every collection.

        All or nothing: if any delete fails, no collection is changed.
        Returns the number of rows / documents removed.
        """


# ---------------------------------------------------------------------------
# PostgreSQL implementation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TableSpec:
    name: str
    columns: tuple[str, ...]  # writable columns besides id / user_id / timestamps
    sort_field: str = "created_at"


CYCLES = TableSpec(
    "cycles",
    ("start_date", "cycle_length", "period_duration", "symptoms", "flow_intensity", "notes"),
    sort_field="start_date",
)
NUTRITION_LOGS = TableSpec(
    "nutrition_logs",
    ("log_date", "meal_type", "food_items", "calories", "notes"),
)
FITNESS_LOGS = TableSpec(
    "fitness_logs",
    (
        "activity_type", "activity_name", "duration_minutes", "intensity",
        "intensity_level", "calories_burned", "notes", "logged_at",
    ),
)
MENTAL_HEALTH_LOGS = TableSpec(
    "mental_health_logs",
    (
        "mood_rating", "stress_level", "anxiety_level", "energy_level",
        "sleep_quality", "notes", "logged_at",
    ),
)
AI_INSIGHTS = TableSpec(
    "ai_insights",
    (
        "type", "title", "content", "confidence_score", "is_read", "read_at",
        "generated_at", "expires_at",
    ),
    sort_field="generated_at",
)


def _status_count(status: str) -> int:
    """``'DELETE 3'`` -> 3"""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except ValueError:
        return 0


def _document(row: asyncpg.Record | None) -> Document | None:
    return dict(row) if row is not None else None


class PostgresCollection(DocumentCollection):
    def __init__(self, db: Database, table: TableSpec) -> None:
        self._db = db
        self._table = table
        self.name = table.name
        self.sort_field = table.sort_field

    def _writable(self, data: Mapping[str, Any]) -> list[tuple[str, Any]]:
        return [(c, data[c]) for c in self._table.columns if c in data]

    async def insert(self, document: Mapping[str, Any]) -> Document:
        pairs = [("user_id", document["user_id"]), *self._writable(document)]
        columns = ", ".join(c for c, _ in pairs)
        placeholders = ", ".join(f"${i}" for i in range(1, len(pairs) + 1))
        row = await self._db.fetchrow(
            f"INSERT INTO {self.name} ({columns}) VALUES ({placeholders}) RETURNING *",
            *(v for _, v in pairs),
        )
        logger.debug("Inserted %s %s", self.name, row["id"])
        return dict(row)

    async def get(self, record_id: str) -> Document | None:
        row = await self._db.fetchrow(
            f"SELECT * FROM {self.name} WHERE id = $1", record_id
        )
        return _document(row)

    async def list(
        self,
        owner: OwnerFilter,
        *,
        limit: int,
        descending: bool = True,
        filters: Mapping[str, Any] | None = None,
    ) -> list[Document]:
        conditions = [f"{owner.field} = $1"]
        params: list[Any] = [owner.owner_id]
        for column, value in self._writable(filters or {}):
            params.append(value)
            conditions.append(f"{column} = ${len(params)}")
        params.append(limit)

        direction = "DESC" if descending else "ASC"
        rows = await self._db.fetch(
            f"SELECT * FROM {self.name} WHERE {' AND '.join(conditions)} "
            f"ORDER BY {self.sort_field} {direction}, created_at {direction} "
            f"LIMIT ${len(params)}",
            *params,
        )
        return [dict(r) for r in rows]

    async def count(self, owner: OwnerFilter) -> int:
        return await self._db.fetchval(
            f"SELECT COUNT(*) FROM {self.name} WHERE {owner.field} = $1",
            owner.owner_id,
        )

    async def update(
        self, record_id: str, changes: Mapping[str, Any]
    ) -> Document | None:
        pairs = self._writable(changes)
        if not pairs:
            return await self.get(record_id)

        set_clauses = [f"{c} = ${i}" for i, (c, _) in enumerate(pairs, start=2)]
        set_clauses.append("updated_at = NOW()")
        row = await self._db.fetchrow(
            f"UPDATE {self.name} SET {', '.join(set_clauses)} WHERE id = $1 RETURNING *",
            record_id,
            *(v for _, v in pairs),
        )
        return _document(row)

    async def delete(self, record_id: str) -> bool:
        status = await self._db.execute(
            f"DELETE FROM {self.name} WHERE id = $1", record_id
        )
        return _status_count(status) > 0

    async def delete_many(self, owner: OwnerFilter) -> int:
        status = await self._db.execute(
            f"DELETE FROM {self.name} WHERE {owner.field} = $1", owner.owner_id
        )
        return _status_count(status)


class PostgresKeyedDocuments(KeyedDocuments):
    def __init__(self, db: Database, table: str) -> None:
        self._db = db
        self.name = table

    async def get(self, owner: OwnerFilter) -> Document | None:
        row = await self._db.fetchrow(
            f"SELECT data FROM {self.name} WHERE user_id = $1", owner.owner_id
        )
        return row["data"] if row else None

    async def merge(self, owner: OwnerFilter, data: Mapping[str, Any]) -> Document:
        row = await self._db.fetchrow(
            f"""
            INSERT INTO {self.name} (user_id, data) VALUES ($1, $2)
            ON CONFLICT (user_id) DO UPDATE SET
                data = {self.name}.data || EXCLUDED.data,
                updated_at = NOW()
            RETURNING data
            """,
            owner.owner_id,
            dict(data),
        )
        return row["data"]

    async def delete(self, owner: OwnerFilter) -> bool:
        status = await self._db.execute(
            f"DELETE FROM {self.name} WHERE user_id = $1", owner.owner_id
        )
        return _status_count(status) > 0


@dataclass
class PostgresStore(Store):
    db: Database

    def table_names(self) -> list[str]:
        return [
            *(c.name for c in self.owned_collections()),
            self.profiles.name,
            self.settings.name,
        ]

    async def purge_owner(self, owner: OwnerFilter) -> int:
        deleted = 0
        # one connection, one transaction
        async with self.db.connection() as conn:
            for table in self.table_names():
                status = await conn.execute(
                    f"DELETE FROM {table} WHERE {owner.field} = $1", owner.owner_id
                )
                deleted += _status_count(status)
        logger.info("Purged %d rows for %s", deleted, owner.owner_id)
        return deleted


def build_postgres_store(db: Database) -> PostgresStore:
    return PostgresStore(
        db=db,
        cycles=PostgresCollection(db, CYCLES),
        nutrition_logs=PostgresCollection(db, NUTRITION_LOGS),
        fitness_logs=PostgresCollection(db, FITNESS_LOGS),
        mental_health_logs=PostgresCollection(db, MENTAL_HEALTH_LOGS),
        insights=PostgresCollection(db, AI_INSIGHTS),
        profiles=PostgresKeyedDocuments(db, "user_profiles"),
        settings=PostgresKeyedDocuments(db, "user_settings"),
    )
