# tests/conftest.py - v1
"""Shared test fixtures for all unit and integration tests.

Provides in-memory fakes for the completion, search, publishing and image
services, a memory repository and a wired orchestrator. No network I/O.
"""

from __future__ import annotations

import json

import pytest
import pytest_asyncio

from contentflow.config.settings import Settings
from contentflow.core.errors import CompletionError
from contentflow.core.models import (
    Block,
    PublishedContent,
    PublishTarget,
    UploadedAsset,
    WorkItem,
)
from contentflow.llm.models import CompletionResult
from contentflow.media.base_image_generator import BaseImageGenerator
from contentflow.media.models import GeneratedImage
from contentflow.pipeline.orchestrator import StepOrchestrator
from contentflow.pipeline.plugin_kit.base_step import StepServices
from contentflow.publishing.base_publisher import BasePublisher
from contentflow.search.base_search import BaseSearchClient
from contentflow.search.models import OrganicHit, RelatedQuestion, SearchResult
from contentflow.storage.memory_repository import MemoryRepository

SONNET = "claude-sonnet-4-20250514"

META_DESCRIPTION = (
    "Guide complet pour créer un jardin potager productif, "
    "du choix de l'emplacement aux premiers semis de printemps. " * 2
)[:140].strip()

PLAN_JSON = json.dumps({
    "title_suggestions": [
        {"title": "Jardin potager : le guide 2023", "seo_title": "Créer un jardin potager en 2023"},
        {"title": "Réussir son potager"},
    ],
    "meta_description": META_DESCRIPTION,
    "content_blocks": [
        {"type": "paragraph", "heading": None, "writing_directive": "Introduction"},
        {"type": "h2", "heading": "Choisir l'emplacement", "writing_directive": "Soleil, eau",
         "generate_image": True, "image_prompt": "sunny vegetable garden"},
        {"type": "h2", "heading": "Préparer le sol", "writing_directive": "Compost"},
        {"type": "h2", "heading": "Calendrier des semis", "writing_directive": "Mois par mois",
         "format_hint": "table"},
        {"type": "faq", "heading": "Questions fréquentes", "writing_directive": "3 questions",
         "format_hint": "faq"},
    ],
})

BLOCK_HTML = "<p>Un potager bien exposé reçoit au moins six heures de soleil par jour.</p>"


def completion_result(
    content: str,
    model: str = SONNET,
    tokens_in: int = 100,
    tokens_out: int = 50,
    cost_usd: float = 0.00105,
) -> CompletionResult:
    return CompletionResult(
        content=content,
        tokens_in=tokens_in,
        tokens_out=tokens_out,
        duration_ms=12,
        model_used=model,
        provider="anthropic",
        cost_usd=cost_usd,
    )


# === FAKE SERVICES ===


class FakeCompletion:
    """Scripted completion service keyed by task name."""

    def __init__(self) -> None:
        self.responses: dict[str, str] = {
            "plan_article": PLAN_JSON,
            "write_block": BLOCK_HTML,
            "generate_meta": META_DESCRIPTION,
        }
        self.calls: list[tuple[str, str | None]] = []
        # 1-based write_block call numbers that fail
        self.failing_writes: set[int] = set()
        self._writes = 0

    async def complete(self, task, messages, system=None, model_override=None):
        self.calls.append((task, model_override))
        if task == "write_block":
            self._writes += 1
            if self._writes in self.failing_writes:
                raise CompletionError("Task 'write_block' failed after 3 attempts (overloaded)")
        return completion_result(self.responses[task])

    def tasks(self) -> list[str]:
        return [task for task, _ in self.calls]


class FakeSearch(BaseSearchClient):
    def __init__(self) -> None:
        self.queries: list[str] = []
        self.questions = ["Quand planter les tomates ?", "Comment préparer le sol ?"]

    async def search(self, query: str, num: int = 10) -> SearchResult:
        self.queries.append(query)
        return SearchResult(
            query=query,
            organic=[
                OrganicHit(position=1, title="Jardin potager débutant : guide pratique",
                           link="https://www.jardiner-malin.fr/potager", snippet="Conseils",
                           domain="www.jardiner-malin.fr"),
                OrganicHit(position=2, title="Potager - Wikipédia",
                           link="https://fr.wikipedia.org/wiki/Potager", snippet="Un potager est",
                           domain="fr.wikipedia.org"),
                OrganicHit(position=3, title="Créer un potager débutant en 5 étapes",
                           link="https://www.rustica.fr/potager", snippet="Étapes",
                           domain="www.rustica.fr"),
            ],
            people_also_ask=[RelatedQuestion(question=q) for q in self.questions],
            related_searches=["potager en carré", "calendrier semis"],
        )


class FakePublisher(BasePublisher):
    def __init__(self) -> None:
        self.payloads = []
        self.uploads = []

    async def create_or_update_content(self, target, payload) -> PublishedContent:
        self.payloads.append(payload)
        return PublishedContent(
            external_id=payload.external_id or "42",
            external_url=f"{target.base_url}/{payload.slug}",
        )

    async def upload_asset(self, target, data, metadata) -> UploadedAsset:
        self.uploads.append(metadata)
        n = len(self.uploads)
        return UploadedAsset(asset_id=str(100 + n), url=f"{target.base_url}/media/{n}.jpg")


class FakeImages(BaseImageGenerator):
    def __init__(self) -> None:
        self.prompts: list[str] = []

    async def generate(self, prompt: str, aspect_ratio: str = "16:9") -> GeneratedImage:
        self.prompts.append(prompt)
        return GeneratedImage(url="https://fal.example/out.jpg", width=1024, height=576)

    async def download(self, url: str) -> bytes:
        return b"\xff\xd8jpeg"


# === FIXTURES ===


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        validate_links=False,
        llm_retry_delays="0,0",
        repository_backend="memory",
    )


@pytest.fixture
def repository() -> MemoryRepository:
    return MemoryRepository()


@pytest.fixture
def fake_completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture
def fake_search() -> FakeSearch:
    return FakeSearch()


@pytest.fixture
def fake_publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def fake_images() -> FakeImages:
    return FakeImages()


@pytest.fixture
def services(fake_completion, fake_search, fake_publisher, fake_images) -> StepServices:
    return StepServices(
        completion=fake_completion,
        publisher=fake_publisher,
        search=fake_search,
        images=fake_images,
        link_checker=None,
    )


@pytest.fixture
def orchestrator(repository, services, settings) -> StepOrchestrator:
    return StepOrchestrator(repository, services, settings)


@pytest.fixture
def target() -> PublishTarget:
    return PublishTarget(
        id="blog",
        name="Blog Jardin",
        base_url="https://blog.example.com",
        username="editor",
        app_password="abcd efgh ijkl",
    )


@pytest.fixture
def written_blocks() -> list[Block]:
    return [
        Block(type="paragraph", content_html="<p>Intro du potager.</p>", word_count=3,
              status="written"),
        Block(type="h2", heading="Choisir l'emplacement", content_html=BLOCK_HTML,
              word_count=13, status="written"),
        Block(type="faq", heading="Questions fréquentes", status="written",
              content_html=(
                  "<details><summary>Quand semer ?</summary><p>Au printemps.</p></details>"
                  "<details><summary>Faut-il arroser ?</summary><p>Le soir.</p></details>"
              )),
    ]


@pytest_asyncio.fixture
async def stored_target(repository, target) -> PublishTarget:
    return await repository.put_target(target)


@pytest_asyncio.fixture
async def draft_item(repository, stored_target) -> WorkItem:
    return await repository.create(
        WorkItem(keyword="jardin potager", target_id=stored_target.id)
    )


@pytest.fixture
def meta_description() -> str:
    """A meta description inside the default 120-160 character window."""
    return META_DESCRIPTION
