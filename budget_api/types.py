"""Type definitions for the Budget API."""

from typing import Literal

from typing_extensions import TypedDict

TipCategory = Literal["budgeting", "saving", "investing", "debt", "mindset"]

ExpansionSource = Literal["openrouter", "fallback"]

# Known reason codes; the field itself stays a plain string.
REASON_SUCCESS = "success"
REASON_MISSING_KEY = "missing-key"
REASON_ERROR = "error"
REASON_CACHED_WITHOUT_KEY = "cached-without-key"
REASON_FALLBACK = "fallback"


class ChatMessage(TypedDict):
    """One chat-completion message."""

    role: Literal["system", "user", "assistant"]
    content: str


class StoredDailyTip(TypedDict, total=False):
    """Persisted daily tip choice."""

    date: str
    tipId: str
    revealed: bool


class StatusInfo(TypedDict):
    """Key presence and configured model."""

    keyPresent: bool
    model: str
