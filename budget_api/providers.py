"""OpenRouter provider adapter for tip expansions."""

from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from loguru import logger

from .coercion import build_expansion, parse_completion
from .config import Settings
from .exceptions import CredentialMissingError, ProviderError, TipNotFoundError
from .models import Expansion
from .tips import Tip, get_tip_by_id
from .types import ChatMessage

SYSTEM_PROMPT = (
    "You are a concise, factual financial literacy assistant. "
    "Output educational guidance only. No personal financial advice."
)

USER_PROMPT = (
    "Return STRICT JSON with keys: summary, deeperDive, keyPoints (array), "
    "actionPlan (array), sources (array of {{title,url}}). No markdown. "
    "If unsure about sources, return an empty array.\n"
    "Base Tip:\n"
    "Title: {title}\n"
    "Category: {category}\n"
    "Content: {content}\n"
    "Actionable: {actionable}"
)

ERROR_EXCERPT_CHARS = 180


@dataclass
class ProviderConfig:
    """Configuration for the OpenRouter provider."""

    api_key: str | None
    model: str
    url: str
    timeout: float = 20.0
    max_tokens: int = 600
    referer: str = "http://localhost"
    title: str = "Budget AI Tip Expansion"

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProviderConfig":
        """Build provider configuration from application settings."""
        return cls(
            api_key=settings.openrouter_api_key,
            model=settings.ai_model,
            url=settings.openrouter_url,
            timeout=settings.llm_timeout,
            max_tokens=settings.max_tokens,
            referer=settings.openrouter_referer,
            title=settings.openrouter_title,
        )


class ExpansionProvider(Protocol):
    """Protocol for expansion providers."""

    async def expand(self, tip_id: str, model: str | None = None) -> Expansion: ...


def build_messages(tip: Tip) -> list[ChatMessage]:
    """Fixed two-message prompt for one tip."""
    user = USER_PROMPT.format(
        title=tip.title,
        category=tip.category,
        content=tip.body,
        actionable=tip.actionable or "",
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


def extract_completion_text(envelope: Any) -> str:
    """Return the first choice's message text from a chat-completion envelope.

    Raises:
        ProviderError: If the envelope does not have the chat-completion shape.
    """
    if not isinstance(envelope, dict):
        raise ProviderError("OpenRouter returned a malformed response envelope")
    choices = envelope.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        raise ProviderError("OpenRouter response contained no choices")
    message = choices[0].get("message")
    if not isinstance(message, dict):
        raise ProviderError("OpenRouter response choice had no message")
    content = message.get("content")
    return content.strip() if isinstance(content, str) else ""


class OpenRouterProvider:
    """Expands tips through a single OpenRouter chat-completion call."""

    def __init__(self, config: ProviderConfig, client: httpx.AsyncClient) -> None:
        """Initialize the provider.

        Args:
            config: Provider configuration
            client: Shared HTTP client; its lifecycle belongs to the caller
        """
        self.config = config
        self.client = client

    async def expand(self, tip_id: str, model: str | None = None) -> Expansion:
        """Expand a tip via OpenRouter.

        Args:
            tip_id: Registry id of the tip.
            model: Model id to request. Defaults to the configured model.

        Raises:
            TipNotFoundError: Unknown tip id.
            CredentialMissingError: No API key configured.
            ProviderError: Transport failure, non-success status or malformed envelope.
        """
        tip = get_tip_by_id(tip_id)
        if tip is None:
            raise TipNotFoundError(tip_id)

        api_key = (self.config.api_key or "").strip()
        if not api_key:
            raise CredentialMissingError("OPENROUTER_API_KEY not set in environment")

        requested_model = model or self.config.model
        envelope = await self._post(
            {
                "model": requested_model,
                "messages": build_messages(tip),
                "max_tokens": self.config.max_tokens,
            },
            api_key,
        )

        completion = parse_completion(extract_completion_text(envelope))
        reported_model = envelope.get("model")
        return build_expansion(
            completion,
            tip,
            model=reported_model if isinstance(reported_model, str) and reported_model else requested_model,
        )

    async def _post(self, body: dict[str, Any], api_key: str) -> Any:
        """Issue the chat-completion request and decode the JSON envelope."""
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.config.referer,
            "X-Title": self.config.title,
        }
        try:
            response = await self.client.post(
                self.config.url,
                json=body,
                headers=headers,
                timeout=self.config.timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning(f"OpenRouter request timed out after {self.config.timeout}s")
            raise ProviderError(
                f"OpenRouter request timed out after {self.config.timeout}s"
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"OpenRouter transport error: {e}")
            raise ProviderError(str(e) or "Network error contacting OpenRouter") from e

        if not response.is_success:
            excerpt = response.text[:ERROR_EXCERPT_CHARS]
            logger.warning(f"OpenRouter returned status {response.status_code}")
            raise ProviderError(
                f"OpenRouter request failed ({response.status_code}): {excerpt}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError("OpenRouter returned a malformed response envelope") from e


def create_provider(settings: Settings, client: httpx.AsyncClient) -> ExpansionProvider:
    """Factory function building the provider for the current settings."""
    return OpenRouterProvider(ProviderConfig.from_settings(settings), client)
