"""Tests for the tip expansion service."""

import asyncio

import pytest

from budget_api.exceptions import CredentialMissingError, ProviderError, TipNotFoundError, ValidationError
from budget_api.fallback import FALLBACK_MODEL
from budget_api.service import TipExpansionService, parse_expand_request
from budget_api.tips import get_tip_by_id
from tests.conftest import DEFAULT_TEST_MODEL, make_provider_expansion


class TestParseExpandRequest:
    """Test request body validation."""

    def test_valid(self):
        assert parse_expand_request({"tipId": "tip-round-up"}) == "tip-round-up"

    def test_surrounding_whitespace_is_kept(self):
        assert parse_expand_request({"tipId": "  tip-round-up "}) == "  tip-round-up "

    @pytest.mark.parametrize(
        "payload",
        [None, [], "tip-round-up", {}, {"tipId": ""}, {"tipId": "   "}, {"tipId": 42}, {"tip": "x"}],
    )
    def test_missing(self, payload):
        with pytest.raises(ValidationError, match="Missing tipId"):
            parse_expand_request(payload)

    @pytest.mark.parametrize("tip_id", ["tip round up", "tip/../etc", "x" * 101, "tip?id=1"])
    def test_malformed(self, tip_id):
        with pytest.raises(ValidationError, match="Malformed tipId"):
            parse_expand_request({"tipId": tip_id})


class TestExpand:
    """Test the cache and fallback policy."""

    @pytest.mark.asyncio
    async def test_cache_miss_calls_provider(self, service, mock_provider, expansion_cache):
        result = await service.expand("tip-invest-index")

        assert result.cached is False
        assert result.expansion.source == "openrouter"
        assert result.expansion.reason == "success"
        assert result.expansion.model == DEFAULT_TEST_MODEL
        mock_provider.expand.assert_awaited_once_with("tip-invest-index", DEFAULT_TEST_MODEL)
        assert "tip-invest-index" in expansion_cache

    @pytest.mark.asyncio
    async def test_cache_hit_skips_provider(self, service, mock_provider):
        first = await service.expand("tip-invest-index")
        second = await service.expand("tip-invest-index")

        assert second.cached is True
        assert second.expansion is first.expansion
        assert mock_provider.expand.await_count == 1

    @pytest.mark.asyncio
    async def test_unknown_tip(self, service, mock_provider, expansion_cache):
        with pytest.raises(TipNotFoundError):
            await service.expand("tip-unknown")

        mock_provider.expand.assert_not_called()
        assert len(expansion_cache) == 0

    @pytest.mark.asyncio
    async def test_missing_key_uses_fallback(self, service, mock_provider, settings_state):
        settings_state["api_key"] = None

        result = await service.expand("tip-emergency-fund")

        assert result.cached is False
        assert result.expansion.source == "fallback"
        assert result.expansion.reason == "missing-key"
        assert result.expansion.model == FALLBACK_MODEL
        assert result.expansion.action_plan == [
            "Open a high-yield savings account and set an automatic weekly transfer."
        ]
        mock_provider.expand.assert_not_called()

    @pytest.mark.asyncio
    async def test_blank_key_counts_as_missing(self, service, mock_provider, settings_state):
        settings_state["api_key"] = "   "

        result = await service.expand("tip-round-up")

        assert result.expansion.reason == "missing-key"
        mock_provider.expand.assert_not_called()

    @pytest.mark.asyncio
    async def test_credential_error_from_provider_uses_missing_key_fallback(self, service, mock_provider):
        mock_provider.expand.side_effect = CredentialMissingError("OPENROUTER_API_KEY not set in environment")

        result = await service.expand("tip-round-up")

        assert result.expansion.source == "fallback"
        assert result.expansion.reason == "missing-key"

    @pytest.mark.asyncio
    async def test_provider_error_uses_error_fallback(self, service, mock_provider):
        mock_provider.expand.side_effect = ProviderError("OpenRouter request failed (500): boom", 500)
        tip = get_tip_by_id("tip-round-up")

        result = await service.expand("tip-round-up")

        assert result.cached is False
        assert result.expansion.source == "fallback"
        assert result.expansion.reason == "error"
        assert result.expansion.deeper_dive == (
            f"{tip.content}\n(Original error: OpenRouter request failed (500): boom)"
        )

    @pytest.mark.asyncio
    async def test_unexpected_error_uses_error_fallback(self, service, mock_provider):
        mock_provider.expand.side_effect = RuntimeError("kaboom")

        result = await service.expand("tip-round-up")

        assert result.expansion.reason == "error"
        assert result.expansion.deeper_dive.endswith("(Original error: kaboom)")

    @pytest.mark.asyncio
    async def test_fallback_is_cached(self, service, mock_provider):
        mock_provider.expand.side_effect = ProviderError("down")

        await service.expand("tip-round-up")
        mock_provider.expand.side_effect = None
        second = await service.expand("tip-round-up")

        assert second.cached is True
        assert second.expansion.reason == "error"
        assert mock_provider.expand.await_count == 1

    @pytest.mark.asyncio
    async def test_provider_reason_is_kept(self, service, mock_provider):
        expansion = make_provider_expansion("tip-round-up")
        expansion.reason = "partial"
        mock_provider.expand.side_effect = None
        mock_provider.expand.return_value = expansion

        result = await service.expand("tip-round-up")

        assert result.expansion.reason == "partial"

    @pytest.mark.asyncio
    async def test_model_change_is_read_per_request(self, service, mock_provider, settings_state):
        settings_state["model"] = "meta/llama-3"

        await service.expand("tip-round-up")

        mock_provider.expand.assert_awaited_once_with("tip-round-up", "meta/llama-3")


class TestCachedWithoutKey:
    """Test annotation of provider answers served after the key is removed."""

    @pytest.mark.asyncio
    async def test_annotated_when_key_removed(self, service, settings_state):
        await service.expand("tip-invest-auto")
        settings_state["api_key"] = None

        result = await service.expand("tip-invest-auto")

        assert result.cached is True
        assert result.expansion.source == "openrouter"
        assert result.expansion.reason == "cached-without-key"

    @pytest.mark.asyncio
    async def test_annotation_persists_after_key_returns(self, service, settings_state):
        await service.expand("tip-invest-auto")
        settings_state["api_key"] = None
        await service.expand("tip-invest-auto")
        settings_state["api_key"] = "test-key"

        result = await service.expand("tip-invest-auto")

        assert result.expansion.reason == "cached-without-key"

    @pytest.mark.asyncio
    async def test_fallback_entries_not_annotated(self, service, settings_state):
        settings_state["api_key"] = None
        await service.expand("tip-invest-auto")

        result = await service.expand("tip-invest-auto")

        assert result.expansion.reason == "missing-key"

    @pytest.mark.asyncio
    async def test_not_annotated_while_key_present(self, service):
        await service.expand("tip-invest-auto")

        result = await service.expand("tip-invest-auto")

        assert result.expansion.reason == "success"


class TestConcurrency:
    """Test single-flight behaviour per tip id."""

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_provider_call(self, service, mock_provider):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_expand(tip_id, model=None):
            started.set()
            await release.wait()
            return make_provider_expansion(tip_id)

        mock_provider.expand.side_effect = slow_expand

        first = asyncio.create_task(service.expand("tip-debt-snowball"))
        await started.wait()
        second = asyncio.create_task(service.expand("tip-debt-snowball"))
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(first, second)

        assert mock_provider.expand.await_count == 1
        assert [r.cached for r in results] == [False, True]
        assert results[0].expansion is results[1].expansion

    @pytest.mark.asyncio
    async def test_different_tips_do_not_block_each_other(self, service, mock_provider):
        release = asyncio.Event()

        async def expand(tip_id, model=None):
            if tip_id == "tip-debt-snowball":
                await release.wait()
            return make_provider_expansion(tip_id)

        mock_provider.expand.side_effect = expand

        blocked = asyncio.create_task(service.expand("tip-debt-snowball"))
        other = await asyncio.wait_for(service.expand("tip-debt-avalanche"), timeout=1)
        release.set()
        await blocked

        assert other.cached is False


class TestStatus:
    """Test status reporting."""

    def test_key_present(self, service):
        assert service.status() == {"keyPresent": True, "model": DEFAULT_TEST_MODEL}

    def test_key_absent(self, service, settings_state):
        settings_state["api_key"] = None
        settings_state["model"] = "   "

        assert service.status() == {"keyPresent": False, "model": "openai/gpt-4o-mini"}

    def test_never_contains_key(self, service, settings_state):
        settings_state["api_key"] = "sk-or-very-secret"

        assert "sk-or-very-secret" not in repr(service.status())


class TestConstruction:
    """Test default wiring."""

    def test_defaults_to_environment_settings(self, expansion_cache):
        from budget_api.config import get_settings

        service = TipExpansionService(cache=expansion_cache, provider_factory=lambda s: None)

        assert service.settings_reader is get_settings
