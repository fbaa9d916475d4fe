"""Profile analysis pipeline: activities -> prompts -> LLM scores -> ProfileAnalysis."""
import logging
import math
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from ethos_spider.analyzers.prompt import build_prompts
from ethos_spider.analyzers.scoring import score_activities
from ethos_spider.config import ANALYSIS_CONFIG, AnalysisConfig
from ethos_spider.errors import ConfigurationError, NoActivitiesError
from ethos_spider.models import Activity, ProfileAnalysis

_log = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def aggregate(
    userkey: str,
    activities: Sequence[Activity],
    results: dict[str, Any],
    *,
    model: str,
    now: datetime | None = None,
) -> ProfileAnalysis:
    """Combine activity statistics with the parsed scores.

    The author average runs over every activity passed in, whatever its kind.
    """
    if not activities:
        raise NoActivitiesError()

    avg = sum(a.author.score for a in activities) / len(activities)
    return ProfileAnalysis(
        userkey=userkey,
        timestamp=now or datetime.now(timezone.utc),
        total_reviews=sum(1 for a in activities if a.type == "review"),
        total_vouches=sum(1 for a in activities if a.type == "vouch"),
        avg_author_score=_round_half_up(avg),
        model=model,
        results=results,
    )


async def analyze_profile(
    userkey: str,
    activities: Sequence[Activity],
    *,
    api_key: str | None,
    config: AnalysisConfig = ANALYSIS_CONFIG,
) -> ProfileAnalysis:
    if not api_key:
        raise ConfigurationError("OpenRouter API key not configured")
    if not activities:
        raise NoActivitiesError()

    _log.info("Analyzing %d activities for %s", len(activities), userkey)

    system_prompt, user_prompt = build_prompts(activities, config)
    results = await score_activities(system_prompt, user_prompt, api_key=api_key, config=config)
    return aggregate(userkey, activities, results, model=config.llm.model)
