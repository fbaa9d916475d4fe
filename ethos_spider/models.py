from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

ANALYZED_KINDS = ("review", "vouch")


class _Wire(BaseModel):
    """Ethos and API payloads use camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchResult(_Wire):
    model_config = ConfigDict(extra="allow")

    userkey: str
    name: str | None = None
    username: str | None = None
    avatar: str | None = None
    description: str | None = None
    score: int | float = 0
    score_xp_multiplier: float | None = None
    profile_id: int | None = None
    primary_address: str | None = None


class ActivityActor(_Wire):
    model_config = ConfigDict(extra="allow")

    userkey: str | None = None
    name: str | None = None
    username: str | None = None
    avatar: str | None = None
    description: str | None = None
    score: int | float
    score_xp_multiplier: float | None = None
    profile_id: int | None = None
    primary_address: str | None = None


class ActivityData(_Wire):
    model_config = ConfigDict(extra="allow")

    id: int | None = None
    comment: str | None = None
    metadata: str | None = None     # JSON-encoded blob, may carry "description"
    score: str | int | float | None = None
    created_at: int | None = None
    archived: bool | None = None


class Activity(_Wire):
    model_config = ConfigDict(extra="allow")

    type: str
    data: ActivityData = ActivityData()
    author: ActivityActor
    subject: ActivityActor | None = None
    timestamp: int | None = None
    llm_quality_score: int | float | None = None
    votes: dict[str, Any] | None = None
    reply_summary: dict[str, Any] | None = None


class NormalizedActivity(_Wire):
    type: str
    author_score: int | float
    author_name: str
    content: str
    description: str
    score: str | int | float
    timestamp: int | None = None
    llm_quality_score: int | float | None = None


class ProfileAnalysis(_Wire):
    userkey: str
    timestamp: datetime
    total_reviews: int
    total_vouches: int
    avg_author_score: int
    model: str
    results: dict[str, Any]
