"""Local fallback expansions built from a tip's own static content."""

from datetime import UTC, datetime

from .exceptions import TipNotFoundError
from .models import Expansion
from .tips import get_tip_by_id
from .types import REASON_FALLBACK

FALLBACK_MODEL = "fallback-local"

FALLBACK_KEY_POINTS = (
    "Review base concept",
    "Apply actionable step",
    "Track impact over time",
)


def generate_fallback(tip_id: str, reason: str = REASON_FALLBACK) -> Expansion:
    """Build a minimal valid expansion without any network call.

    Args:
        tip_id: Registry id of the tip to expand.
        reason: Machine-readable code explaining why the fallback was used.

    Raises:
        TipNotFoundError: If the tip id is unknown.
    """
    tip = get_tip_by_id(tip_id)
    if tip is None:
        raise TipNotFoundError(tip_id)

    now = datetime.now(UTC)
    return Expansion(
        tip_id=tip_id,
        base_tip_id=tip_id,
        summary=tip.description,
        deeper_dive=tip.body,
        key_points=list(FALLBACK_KEY_POINTS),
        action_plan=[tip.actionable] if tip.actionable else [],
        sources=[],
        model=FALLBACK_MODEL,
        generated_at=now,
        created_at=now,
        source="fallback",
        reason=reason,
    )
