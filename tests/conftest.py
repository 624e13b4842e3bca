"""Shared test fixtures."""

import json
from collections.abc import AsyncGenerator, Callable
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from budget_api.api import create_app
from budget_api.coercion import StructuredCompletion, build_expansion
from budget_api.config import Settings
from budget_api.models import Expansion
from budget_api.service import TipExpansionService
from budget_api.storage import InMemoryExpansionCache, SQLiteKeyValueStore
from budget_api.tips import get_tip_by_id

DEFAULT_TEST_MODEL = "openai/gpt-4o-mini"


def make_provider_expansion(tip_id: str, deeper_dive: str = "Model deeper dive") -> Expansion:
    """A provider-origin expansion as the OpenRouter adapter would build it."""
    tip = get_tip_by_id(tip_id)
    assert tip is not None
    return build_expansion(
        StructuredCompletion(
            {
                "summary": "Model summary",
                "deeperDive": deeper_dive,
                "keyPoints": ["Point one", "Point two"],
                "actionPlan": ["Step one"],
                "sources": [{"title": "Investopedia", "url": "https://www.investopedia.com/"}],
            }
        ),
        tip,
        model=DEFAULT_TEST_MODEL,
    )


def chat_completion(content: str, model: str = DEFAULT_TEST_MODEL) -> dict[str, Any]:
    """Minimal OpenRouter chat-completion envelope."""
    return {
        "id": "gen-123",
        "model": model,
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
    }


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)

    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def settings_state() -> dict[str, str | None]:
    """Mutable environment stand-in read by ``settings_reader``."""
    return {"api_key": "test-key", "model": DEFAULT_TEST_MODEL}


@pytest.fixture
def settings_reader(settings_state: dict[str, str | None]) -> Callable[[], Settings]:
    """Settings reader that reflects changes to ``settings_state`` per call."""

    def read() -> Settings:
        return Settings(
            _env_file=None,
            openrouter_api_key=settings_state["api_key"],
            ai_model=settings_state["model"],
        )

    return read


@pytest.fixture
def mock_provider() -> AsyncMock:
    """Provider whose expand() returns a fresh provider-origin expansion."""
    provider = AsyncMock()

    async def expand(tip_id: str, model: str | None = None) -> Expansion:
        return make_provider_expansion(tip_id)

    provider.expand.side_effect = expand
    return provider


@pytest.fixture
def expansion_cache() -> InMemoryExpansionCache:
    return InMemoryExpansionCache()


@pytest.fixture
def service(
    expansion_cache: InMemoryExpansionCache,
    mock_provider: AsyncMock,
    settings_reader: Callable[[], Settings],
) -> TipExpansionService:
    return TipExpansionService(
        cache=expansion_cache,
        provider_factory=lambda settings: mock_provider,
        settings_reader=settings_reader,
    )


@pytest_asyncio.fixture
async def client(service: TipExpansionService) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to a fresh app instance."""
    app = create_app(service=service, settings=Settings(_env_file=None))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def kv_store(tmp_path) -> AsyncGenerator[SQLiteKeyValueStore, None]:
    """File-backed client state store in a temporary directory."""
    store = SQLiteKeyValueStore(f"sqlite+aiosqlite:///{tmp_path}/client.db")
    await store.startup()
    yield store
    await store.shutdown()
