"""Two-stage coercion of provider completions into the expansion schema.

Stage 1 (:func:`parse_completion`) tries a strict parse of the completion text
into a JSON object and tags the outcome: :class:`StructuredCompletion` when it
succeeds, :class:`RawTextCompletion` when the text is not a JSON object.

Stage 2 (:func:`build_expansion`) turns either variant into an
:class:`~budget_api.models.Expansion`, defaulting every field on its own so a
single malformed field never discards the rest of the response.
"""

import json
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .models import MAX_ACTION_STEPS, MAX_KEY_POINTS, MAX_SOURCES, Expansion, Source
from .tips import Tip

_LEADING_FENCE = re.compile(r"^```(?:json)?[ \t]*\n?", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\n?```\s*$")


@dataclass(frozen=True, slots=True)
class StructuredCompletion:
    """Completion text parsed into a JSON object."""

    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RawTextCompletion:
    """Completion text that is not a JSON object."""

    text: str


ParsedCompletion = StructuredCompletion | RawTextCompletion


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json (or bare ```) fence and a trailing ```."""
    text = text.strip()
    text = _LEADING_FENCE.sub("", text, count=1)
    text = _TRAILING_FENCE.sub("", text, count=1)
    return text.strip()


def parse_completion(text: str | None) -> ParsedCompletion:
    """Stage 1: strict JSON-object parse of the completion text."""
    raw = (text or "").strip()
    if not raw:
        return StructuredCompletion()

    candidate = strip_code_fences(raw)
    try:
        data = json.loads(candidate)
    except ValueError:
        return RawTextCompletion(raw)

    if not isinstance(data, dict):
        return RawTextCompletion(raw)
    return StructuredCompletion(data)


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _string_list(value: Any, cap: int) -> list[str] | None:
    if not isinstance(value, list):
        return None
    items = [text for text in (_text(item) for item in value) if text]
    return items[:cap]


def _sources(value: Any) -> list[Source]:
    if not isinstance(value, list):
        return []
    sources = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        title = entry.get("title")
        if not title:
            continue
        url = entry.get("url")
        sources.append(Source(title=str(title), url=str(url) if url else None))
    return sources[:MAX_SOURCES]


def _raw_payload(completion: RawTextCompletion, tip: Tip) -> dict[str, Any]:
    return {
        "summary": tip.description,
        "deeperDive": completion.text,
        "keyPoints": [],
        "actionPlan": [tip.actionable] if tip.actionable else [],
        "sources": [],
    }


def build_expansion(
    completion: ParsedCompletion,
    tip: Tip,
    model: str,
    generated_at: datetime | None = None,
) -> Expansion:
    """Stage 2: default each field independently and build the expansion."""
    match completion:
        case RawTextCompletion():
            payload = _raw_payload(completion, tip)
        case StructuredCompletion(data=data):
            payload = data

    default_plan = [tip.actionable] if tip.actionable else []
    key_points = _string_list(payload.get("keyPoints"), MAX_KEY_POINTS)
    action_plan = _string_list(payload.get("actionPlan"), MAX_ACTION_STEPS)

    now = generated_at or datetime.now(UTC)
    return Expansion(
        tip_id=tip.id,
        base_tip_id=tip.id,
        summary=_text(payload.get("summary")) or tip.description,
        deeper_dive=(
            _text(payload.get("deeperDive"))
            or _text(payload.get("details"))
            or _text(payload.get("content"))
            or tip.body
        ),
        key_points=key_points if key_points is not None else [],
        action_plan=action_plan if action_plan is not None else default_plan,
        sources=_sources(payload.get("sources")),
        model=model,
        generated_at=now,
        created_at=now,
        source="openrouter",
    )
