"""Client-side expansion requestor with memory and persistent caches."""

from dataclasses import dataclass

import httpx
from loguru import logger
from pydantic import ValidationError as SchemaError

from .config import Settings
from .exceptions import ExpansionRequestError
from .models import Expansion
from .storage import KeyValueStore

EXPANSION_KEY_PREFIX = "budgetApp.expansion."
BODY_EXCERPT_CHARS = 120


def expansion_storage_key(tip_id: str) -> str:
    """Persistent-store key for one tip's cached expansion."""
    return f"{EXPANSION_KEY_PREFIX}{tip_id}"


@dataclass(slots=True)
class ExpansionOutcome:
    """Result handed to the presentation layer: an expansion or an error text."""

    expansion: Expansion | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.expansion is not None


class ExpansionClient:
    """Requests tip expansions from the API and caches them per tip id."""

    def __init__(
        self,
        base_url: str,
        store: KeyValueStore,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: API root, e.g. ``http://localhost:5055``.
            store: Durable store surviving restarts.
            http_client: Optional shared HTTP client. One is created (and owned)
                when omitted.
            timeout: Per-request timeout in seconds.
        """
        self.expand_url = f"{base_url.rstrip('/')}/api/tips/expand"
        self.store = store
        self.timeout = timeout
        self.memory: dict[str, Expansion] = {}
        self._owns_http = http_client is None
        self.http = http_client or httpx.AsyncClient()

    @classmethod
    def from_settings(cls, settings: Settings, store: KeyValueStore) -> "ExpansionClient":
        """Build a client pointed at the configured API base."""
        return cls(settings.api_base, store, timeout=settings.client_timeout)

    async def __aenter__(self) -> "ExpansionClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http:
            await self.http.aclose()

    async def hydrate(self, tip_id: str) -> Expansion | None:
        """Load a persisted expansion into the memory cache.

        Unreadable entries are ignored; the tip simply has no cached expansion.
        """
        try:
            raw = await self.store.get(expansion_storage_key(tip_id))
            if raw is None:
                return None
            expansion = Expansion.model_validate(raw)
        except SchemaError:
            logger.debug(f"Ignoring malformed persisted expansion for {tip_id}")
            return None
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Expansion cache hydration failed (non-critical): {e}")
            return None

        self.memory[tip_id] = expansion
        return expansion

    async def fetch(self, tip_id: str) -> Expansion:
        """Return the expansion for a tip, from memory or from the API.

        Raises:
            ExpansionRequestError: If the request fails or the response is unusable.
        """
        cached = self.memory.get(tip_id)
        if cached is not None:
            return cached

        expansion = await self.request_expansion(tip_id)
        self.memory[tip_id] = expansion
        await self._try_persist(tip_id, expansion)
        return expansion

    async def expand(self, tip_id: str) -> ExpansionOutcome:
        """Like :meth:`fetch`, but failures come back as plain text."""
        try:
            return ExpansionOutcome(expansion=await self.fetch(tip_id))
        except ExpansionRequestError as e:
            logger.info(f"Expansion request for {tip_id} failed: {e}")
            return ExpansionOutcome(error=str(e))

    async def request_expansion(self, tip_id: str) -> Expansion:
        """Issue the expand request and parse the response defensively."""
        try:
            response = await self.http.post(
                self.expand_url,
                json={"tipId": tip_id},
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise ExpansionRequestError(f"Request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise ExpansionRequestError(str(e) or "Network error contacting the API") from e

        payload = self._decode(response)
        if not response.is_success or not payload.get("ok"):
            message = payload.get("error")
            raise ExpansionRequestError(
                message if isinstance(message, str) and message else f"Request failed ({response.status_code})",
                status_code=response.status_code,
            )

        data = payload.get("data")
        if data is None:
            raise ExpansionRequestError(
                f"Response contained no expansion (status {response.status_code})",
                status_code=response.status_code,
            )
        try:
            return Expansion.model_validate(data)
        except SchemaError as e:
            raise ExpansionRequestError(
                f"Malformed expansion in response (status {response.status_code})",
                status_code=response.status_code,
            ) from e

    async def forget(self, tip_id: str) -> None:
        """Clear one tip's expansion from both caches."""
        self.memory.pop(tip_id, None)
        await self.store.delete(expansion_storage_key(tip_id))

    async def forget_all(self) -> None:
        """Clear every cached expansion."""
        self.memory.clear()
        for key in await self.store.keys(EXPANSION_KEY_PREFIX):
            await self.store.delete(key)

    @staticmethod
    def _decode(response: httpx.Response) -> dict:
        """Decode a JSON object body or raise a descriptive error."""
        status_code = response.status_code
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            excerpt = response.text[:BODY_EXCERPT_CHARS]
            raise ExpansionRequestError(
                f"Expected JSON but received '{content_type or 'no content-type'}' "
                f"(status {status_code}). {excerpt}".strip(),
                status_code=status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            body = response.text
            detail = f"Body: {body[:BODY_EXCERPT_CHARS]}" if body else ""
            raise ExpansionRequestError(
                f"Invalid or empty JSON (status {status_code}). {detail}".strip(),
                status_code=status_code,
            ) from e

        if not isinstance(payload, dict):
            raise ExpansionRequestError(
                f"Invalid or empty JSON (status {status_code}).",
                status_code=status_code,
            )
        return payload

    async def _try_persist(self, tip_id: str, expansion: Expansion) -> None:
        """Persist with graceful fallback."""
        try:
            await self.store.set(expansion_storage_key(tip_id), expansion.to_wire())
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Expansion persist failed (non-critical): {e}")
