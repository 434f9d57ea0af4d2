"""Shared fixtures: in-memory store, fake identity verifier, fake insight
generator and a TestClient wired through ``create_app``."""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Mapping
from datetime import timedelta
from typing import Any

import pytest
from fastapi.testclient import TestClient

from lunara.auth.guard import OwnerFilter
from lunara.auth.identity import Principal
from lunara.config import Settings
from lunara.errors import AuthenticationError, GenerationFailedError
from lunara.insights.generator import GeneratedInsight
from lunara.main import create_app
from lunara.models.base import utc_now
from lunara.models.insights import INSIGHT_TITLES, InsightType
from lunara.services.records import Repositories
from lunara.services.store import Document, DocumentCollection, KeyedDocuments, Store

USER_A = Principal("user-a", email="alice@example.com", email_verified=True)
USER_B = Principal("user-b", email="bob@example.com", email_verified=True)

TOKENS = {"token-a": USER_A, "token-b": USER_B}
AUTH_A = {"Authorization": "Bearer token-a"}
AUTH_B = {"Authorization": "Bearer token-b"}


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class InMemoryCollection(DocumentCollection):
    """Dict-backed collection that records every call it receives."""

    def __init__(self, name: str, sort_field: str = "created_at") -> None:
        self.name = name
        self.sort_field = sort_field
        self.documents: dict[str, Document] = {}
        self.calls: list[str] = []

    async def insert(self, document: Mapping[str, Any]) -> Document:
        self.calls.append("insert")
        now = utc_now()
        record = {**document, "id": uuid.uuid4().hex, "created_at": now, "updated_at": now}
        self.documents[record["id"]] = record
        return dict(record)

    async def get(self, record_id: str) -> Document | None:
        self.calls.append("get")
        record = self.documents.get(record_id)
        return dict(record) if record else None

    async def list(
        self,
        owner: OwnerFilter,
        *,
        limit: int,
        descending: bool = True,
        filters: Mapping[str, Any] | None = None,
    ) -> list[Document]:
        self.calls.append("list")
        rows = [
            dict(d) for d in self.documents.values()
            if d.get(owner.field) == owner.owner_id
            and all(d.get(k) == v for k, v in (filters or {}).items())
        ]
        rows.sort(
            key=lambda d: (str(d.get(self.sort_field) or ""), str(d["created_at"])),
            reverse=descending,
        )
        return rows[:limit]

    async def count(self, owner: OwnerFilter) -> int:
        self.calls.append("count")
        return sum(1 for d in self.documents.values() if d.get(owner.field) == owner.owner_id)

    async def update(self, record_id: str, changes: Mapping[str, Any]) -> Document | None:
        self.calls.append("update")
        if record_id not in self.documents:
            return None
        self.documents[record_id].update(changes, updated_at=utc_now())
        return dict(self.documents[record_id])

    async def delete(self, record_id: str) -> bool:
        self.calls.append("delete")
        return self.documents.pop(record_id, None) is not None

    async def delete_many(self, owner: OwnerFilter) -> int:
        self.calls.append("delete_many")
        doomed = [k for k, d in self.documents.items() if d.get(owner.field) == owner.owner_id]
        for key in doomed:
            del self.documents[key]
        return len(doomed)


class InMemoryKeyedDocuments(KeyedDocuments):
    def __init__(self, name: str) -> None:
        self.name = name
        self.documents: dict[str, Document] = {}
        self.calls: list[str] = []

    async def get(self, owner: OwnerFilter) -> Document | None:
        self.calls.append("get")
        doc = self.documents.get(owner.owner_id)
        return dict(doc) if doc else None

    async def merge(self, owner: OwnerFilter, data: Mapping[str, Any]) -> Document:
        self.calls.append("merge")
        doc = self.documents.setdefault(owner.owner_id, {})
        doc.update(data)
        return dict(doc)

    async def delete(self, owner: OwnerFilter) -> bool:
        self.calls.append("delete")
        return self.documents.pop(owner.owner_id, None) is not None


class InMemoryStore(Store):
    async def purge_owner(self, owner: OwnerFilter) -> int:
        parts = [*self.owned_collections(), self.profiles, self.settings]
        snapshot = [dict(part.documents) for part in parts]
        try:
            deleted = 0
            for collection in self.owned_collections():
                deleted += await collection.delete_many(owner)
            for documents in (self.profiles, self.settings):
                deleted += int(await documents.delete(owner))
        except Exception:
            # roll back like a failed transaction
            for part, documents in zip(parts, snapshot):
                part.documents = documents
            raise
        return deleted


def build_memory_store() -> InMemoryStore:
    return InMemoryStore(
        cycles=InMemoryCollection("cycles", sort_field="start_date"),
        nutrition_logs=InMemoryCollection("nutrition_logs"),
        fitness_logs=InMemoryCollection("fitness_logs"),
        mental_health_logs=InMemoryCollection("mental_health_logs"),
        insights=InMemoryCollection("ai_insights", sort_field="generated_at"),
        profiles=InMemoryKeyedDocuments("user_profiles"),
        settings=InMemoryKeyedDocuments("user_settings"),
    )


def store_calls(store: Store) -> list[str]:
    calls: list[str] = []
    for part in (*store.owned_collections(), store.profiles, store.settings):
        calls.extend(part.calls)
    return calls


# ---------------------------------------------------------------------------
# Fakes for the external services
# ---------------------------------------------------------------------------


class FakeVerifier:
    def __init__(self, tokens: dict[str, Principal] | None = None) -> None:
        self.tokens = tokens if tokens is not None else TOKENS
        self.seen: list[str] = []

    def verify(self, token: str) -> Principal:
        self.seen.append(token)
        try:
            return self.tokens[token]
        except KeyError:
            raise AuthenticationError() from None


class FakeGenerator:
    def __init__(self, available: bool = True, fail: bool = False) -> None:
        self.available = available
        self.fail = fail
        self.summaries: list[Any] = []

    @property
    def is_available(self) -> bool:
        return self.available

    async def generate(self, summary: Any, insight_type: InsightType | str) -> GeneratedInsight:
        if self.fail:
            raise GenerationFailedError()
        self.summaries.append(summary)
        insight_type = InsightType(insight_type)
        now = utc_now()
        return GeneratedInsight(
            type=insight_type.value,
            title=INSIGHT_TITLES[insight_type],
            content=f"Advice for the {summary.cycle_phase} phase.",
            generated_at=now,
            expires_at=now + timedelta(days=7),
        )

    async def generate_many(
        self, summary: Any, insight_types: list[InsightType | str]
    ) -> list[GeneratedInsight]:
        return [await self.generate(summary, t) for t in insight_types]

    async def quick_tip(self, topic: str) -> str:
        if self.fail:
            raise GenerationFailedError()
        return f"A fresh tip about {topic}."


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        firebase_project_id="lunara-test",
        openai_api_key=None,
        rate_limit_per_minute=1000,
    )


@pytest.fixture
def store() -> Store:
    return build_memory_store()


@pytest.fixture
def repos(store: Store) -> Repositories:
    return Repositories.from_store(store)


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def client(settings, verifier, store, generator) -> Iterator[TestClient]:
    app = create_app(settings, verifier=verifier, store=store, generator=generator)
    with TestClient(app) as test_client:
        yield test_client
