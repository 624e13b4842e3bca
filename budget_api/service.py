"""Tip expansion orchestration: validation, caching and fallback policy."""

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger

from .config import Settings, get_settings
from .exceptions import CredentialMissingError, TipNotFoundError, ValidationError
from .fallback import generate_fallback
from .models import Expansion
from .providers import ExpansionProvider
from .storage import ExpansionCache
from .tips import get_tip_by_id
from .types import (
    REASON_CACHED_WITHOUT_KEY,
    REASON_ERROR,
    REASON_MISSING_KEY,
    REASON_SUCCESS,
    StatusInfo,
)

TIP_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,100}$")

ProviderFactory = Callable[[Settings], ExpansionProvider]


@dataclass(slots=True)
class ExpandResult:
    """Expansion plus whether it was served from the server cache."""

    expansion: Expansion
    cached: bool


def parse_expand_request(payload: Any) -> str:
    """Validate an expand request body and return its tip id.

    The id is returned as sent, so padded ids fail the tip lookup.
    """
    tip_id = payload.get("tipId") if isinstance(payload, dict) else None
    if not isinstance(tip_id, str) or not tip_id.strip():
        raise ValidationError("Missing tipId")

    if not TIP_ID_PATTERN.match(tip_id.strip()):
        raise ValidationError("Malformed tipId")
    return tip_id


class TipExpansionService:
    """Resolves expansions through the cache, the provider and the fallback."""

    def __init__(
        self,
        cache: ExpansionCache,
        provider_factory: ProviderFactory,
        settings_reader: Callable[[], Settings] = get_settings,
    ) -> None:
        """Initialize with injected dependencies."""
        self.cache = cache
        self.provider_factory = provider_factory
        self.settings_reader = settings_reader

    async def expand(self, tip_id: str) -> ExpandResult:
        """Return the expansion for a tip, generating and caching it on a miss.

        Raises:
            TipNotFoundError: If the tip id is unknown.
        """
        if get_tip_by_id(tip_id) is None:
            raise TipNotFoundError(tip_id)

        settings = self.settings_reader()

        async with self.cache.lock(tip_id):
            cached = await self.cache.get(tip_id)
            if cached is not None:
                logger.debug(f"Expansion cache hit for {tip_id}")
                self._annotate_stale(cached, settings.key_present)
                return ExpandResult(cached, cached=True)

            logger.debug(f"Expansion cache miss for {tip_id}")
            expansion = await self._resolve(tip_id, settings)
            await self.cache.set(tip_id, expansion)

        return ExpandResult(expansion, cached=False)

    def status(self) -> StatusInfo:
        """Key presence and configured model. Never includes the key."""
        settings = self.settings_reader()
        return {"keyPresent": settings.key_present, "model": settings.ai_model}

    async def _resolve(self, tip_id: str, settings: Settings) -> Expansion:
        if not settings.key_present:
            logger.info(f"No OpenRouter key configured; using fallback for {tip_id}")
            return generate_fallback(tip_id, REASON_MISSING_KEY)

        try:
            provider = self.provider_factory(settings)
            expansion = await provider.expand(tip_id, settings.ai_model)
        except CredentialMissingError:
            logger.info(f"OpenRouter key disappeared; using fallback for {tip_id}")
            return generate_fallback(tip_id, REASON_MISSING_KEY)
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Expansion via OpenRouter failed for {tip_id}: {e}")
            fallback = generate_fallback(tip_id, REASON_ERROR)
            if str(e):
                fallback.deeper_dive += f"\n(Original error: {e})"
            return fallback

        expansion.source = "openrouter"
        if not expansion.reason:
            expansion.reason = REASON_SUCCESS
        logger.info(f"Expanded {tip_id} with model {expansion.model}")
        return expansion

    @staticmethod
    def _annotate_stale(cached: Expansion, key_present: bool) -> None:
        """Mark a provider answer served after the key was removed.

        Mutates the cached object so later reads see the annotation too.
        """
        if key_present or cached.source != "openrouter":
            return
        if cached.reason in (None, REASON_SUCCESS):
            cached.reason = REASON_CACHED_WITHOUT_KEY
