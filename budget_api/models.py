"""Data models using Pydantic."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .types import ExpansionSource

MAX_KEY_POINTS = 12
MAX_ACTION_STEPS = 12
MAX_SOURCES = 8


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Source(CamelModel):
    """A reference cited by an expansion."""

    title: str = Field(..., min_length=1)
    url: str | None = None


class Expansion(CamelModel):
    """AI or fallback elaboration of a tip, cached per tip id."""

    tip_id: str
    base_tip_id: str | None = None
    summary: str
    deeper_dive: str
    key_points: list[str] = Field(default_factory=list, max_length=MAX_KEY_POINTS)
    action_plan: list[str] = Field(default_factory=list, max_length=MAX_ACTION_STEPS)
    sources: list[Source] = Field(default_factory=list, max_length=MAX_SOURCES)
    model: str
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    created_at: datetime | None = None
    source: ExpansionSource | None = None
    reason: str | None = None

    @model_validator(mode="after")
    def fill_aliases(self) -> "Expansion":
        """Keep the legacy alias fields in step with their primaries."""
        if self.base_tip_id is None:
            self.base_tip_id = self.tip_id
        if self.created_at is None:
            self.created_at = self.generated_at
        return self

    def to_wire(self) -> dict:
        """JSON-ready dict using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ExpandResponse(BaseModel):
    """Successful expand response."""

    ok: bool = True
    data: Expansion
    cached: bool = False


class StatusResponse(BaseModel):
    """Key presence and configured model."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    key_present: bool = Field(..., alias="keyPresent")
    model: str


class HealthResponse(BaseModel):
    """Liveness payload."""

    ok: bool = True
    service: str
    time: datetime


class ErrorResponse(BaseModel):
    """Error payload for every non-success response."""

    ok: bool = False
    error: str
