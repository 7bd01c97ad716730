"""Shared fixtures and in-memory stand-ins for storage and translation."""

from dataclasses import replace
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from buzzing.config.settings import Settings
from buzzing.fetch_logs.schemas import FetchLog
from buzzing.posts.repository import ConflictError
from buzzing.posts.schemas import CandidatePost, ExistingPost, Post, ScoreUpdateMode
from buzzing.sources.schemas import Source
from buzzing.translation.config import TranslationConfig
from buzzing.translation.provider import TranslationProvider, TranslationProviderError
from buzzing.translation.schemas import Locale


class FakeSourcesRepository:
    """Dict-backed SourcesRepository."""

    def __init__(self) -> None:
        self.rows: dict[str, Source] = {}

    async def get_or_create(self, source: Source) -> Source:
        if source.name not in self.rows:
            self.rows[source.name] = replace(source, id=f"src-{source.name}")
        return self.rows[source.name]

    async def get_by_name(self, name: str) -> Source | None:
        return self.rows.get(name)

    async def list_sources(self, active_only: bool = False) -> list[Source]:
        rows = sorted(self.rows.values(), key=lambda s: s.name)
        return [s for s in rows if s.is_active or not active_only]

    async def set_active(self, name: str, active: bool) -> bool:
        source = self.rows.get(name)
        if source is None or source.is_active == active:
            return False
        source.is_active = active
        return True


class FakePostRepository:
    """Dict-backed PostRepository with the same dedup and retention rules."""

    def __init__(self) -> None:
        self.rows: dict[str, Post] = {}
        self.update_calls: list[tuple[str, int, int, ScoreUpdateMode]] = []
        self.evict_calls: list[tuple[str, int]] = []
        self._next_id = 1

    def for_source(self, source_id: str) -> list[Post]:
        return [p for p in self.rows.values() if p.source_id == source_id]

    def by_external_id(self, source_id: str, external_id: str) -> Post | None:
        for post in self.rows.values():
            if post.source_id == source_id and post.external_id == external_id:
                return post
        return None

    async def find_existing(self, source_id: str, external_id: str) -> ExistingPost | None:
        post = self.by_external_id(source_id, external_id)
        return ExistingPost(id=post.id, score=post.score) if post else None

    async def insert(self, post: Post) -> str:
        if self.by_external_id(post.source_id, post.external_id) is not None:
            raise ConflictError(post.source_id, post.external_id)
        post_id = f"post-{self._next_id:04d}"
        self._next_id += 1
        self.rows[post_id] = post.model_copy(update={"id": post_id})
        return post_id

    async def update_score_if_threshold(
        self, post_id: str, new_score: int, threshold: int, mode: ScoreUpdateMode
    ) -> bool:
        self.update_calls.append((post_id, new_score, threshold, mode))
        post = self.rows[post_id]
        if not mode.exceeds(post.score, new_score, threshold):
            return False
        self.rows[post_id] = post.model_copy(update={"score": new_score})
        return True

    async def evict_excess(self, source_id: str, max_posts: int) -> int:
        self.evict_calls.append((source_id, max_posts))
        ordered = sorted(self.for_source(source_id), key=lambda p: p.id)
        ordered.sort(key=lambda p: (p.published_at, p.score), reverse=True)
        doomed = ordered[max_posts:]
        for post in doomed:
            del self.rows[post.id]
        return len(doomed)

    async def list_pending_translation(self, limit: int = 50) -> list[Post]:
        pending = [p for p in self.rows.values() if not p.is_translated]
        pending.sort(key=lambda p: (p.published_at, p.score), reverse=True)
        return pending[:limit]

    async def save_translations(self, post_id, translations, is_translated) -> bool:
        post = self.rows[post_id]
        self.rows[post_id] = post.model_copy(
            update={"translations": translations, "is_translated": is_translated}
        )
        return True


class FakeFetchLogRepository:
    def __init__(self) -> None:
        self.logs: list[FetchLog] = []

    async def append(self, log: FetchLog) -> str:
        self.logs.append(log)
        return f"log-{len(self.logs)}"


class FakeTranslationProvider(TranslationProvider):
    """Prefixes text with the target locale; can be told to fail."""

    name = "fake"

    def __init__(self, fail_targets: set[Locale] | None = None) -> None:
        self.calls: list[tuple[str, Locale, Locale]] = []
        self.fail_targets = fail_targets or set()

    async def translate(self, text: str, source: Locale, target: Locale) -> str:
        self.calls.append((text, source, target))
        if target in self.fail_targets:
            raise TranslationProviderError("quota exceeded", code="LimitExceeded")
        return f"[{target.value}] {text}"


class FakeTranslationCache:
    def __init__(self) -> None:
        self.entries: dict[tuple[str, Locale], str] = {}
        self.puts: list[tuple[str, str, Locale, Locale]] = []

    async def get(self, text: str, target: Locale) -> str | None:
        return self.entries.get((text, target))

    async def put(self, text: str, translated: str, source: Locale, target: Locale) -> None:
        self.puts.append((text, translated, source, target))
        self.entries.setdefault((text, target), translated)


@pytest.fixture
def test_settings() -> Settings:
    """Settings with retries disabled so failing requests fail fast."""
    return Settings(
        max_http_retries=0,
        http_timeout_seconds=5.0,
        tencent_secret_id=None,
        tencent_secret_key=None,
    )


@pytest.fixture
def mock_database() -> AsyncMock:
    """Mock Database instance matching the Database API."""
    db = AsyncMock()
    db.fetch = AsyncMock(return_value=[])
    db.fetchval = AsyncMock(return_value=None)
    db.fetchrow = AsyncMock(return_value=None)
    db.execute = AsyncMock(return_value="INSERT 0 1")
    return db


@pytest.fixture
def metrics() -> MagicMock:
    return MagicMock()


@pytest.fixture
def sources_repo() -> FakeSourcesRepository:
    return FakeSourcesRepository()


@pytest.fixture
def posts_repo() -> FakePostRepository:
    return FakePostRepository()


@pytest.fixture
def fetch_logs_repo() -> FakeFetchLogRepository:
    return FakeFetchLogRepository()


@pytest.fixture
def fake_provider() -> FakeTranslationProvider:
    return FakeTranslationProvider()


@pytest.fixture
def fake_cache() -> FakeTranslationCache:
    return FakeTranslationCache()


@pytest.fixture
def no_delay_config() -> TranslationConfig:
    return TranslationConfig(inter_call_delay_seconds=0.0, sweep_delay_seconds=0.0)


@pytest.fixture
def sample_candidate() -> CandidatePost:
    return CandidatePost(
        external_id="40000001",
        title_original="Show HN: A tiny SQLite clone",
        summary_original=None,
        source_url="https://github.com/example/tinysql",
        origin_url="https://news.ycombinator.com/item?id=40000001",
        source_domain="github.com",
        author="alice",
        score=120,
        tags=["Show HN"],
        published_at=datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
    )
