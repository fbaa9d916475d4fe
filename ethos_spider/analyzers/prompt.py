"""Turn raw activities and the category taxonomy into the (system, user) prompt pair."""
import json
import re
from collections.abc import Iterable, Sequence

from ethos_spider.config import ANALYSIS_CONFIG, AnalysisCategory, AnalysisConfig
from ethos_spider.errors import ConfigurationError
from ethos_spider.models import Activity, NormalizedActivity

_PLACEHOLDER = re.compile(r"\{(categories|vouchMultiplier|reviewMultiplier|activities)\}")


def _metadata_description(metadata: str | None) -> str:
    if not metadata:
        return ""
    try:
        parsed = json.loads(metadata)
    except (TypeError, ValueError):
        return ""
    if not isinstance(parsed, dict):
        return ""
    description = parsed.get("description")
    return description if isinstance(description, str) else ""


def normalize_activity(activity: Activity) -> NormalizedActivity:
    author = activity.author
    return NormalizedActivity(
        type=activity.type,
        author_score=author.score,
        author_name=author.name or author.username or "Anonymous",
        content=activity.data.comment or "",
        description=_metadata_description(activity.data.metadata),
        score=activity.data.score or "",
        timestamp=activity.timestamp,
        llm_quality_score=activity.llm_quality_score,
    )


def format_categories(categories: Iterable[AnalysisCategory]) -> str:
    return "\n".join(f"- {c.name}: {c.description}" for c in categories)


def _format_number(value: float) -> str:
    # 2.0 -> "2", 1.5 -> "1.5"
    return f"{value:g}"


def build_prompts(
    activities: Sequence[Activity],
    config: AnalysisConfig = ANALYSIS_CONFIG,
) -> tuple[str, str]:
    """Return (system_prompt, user_prompt) for a scoring request.

    One normalized entry per input activity, in input order.
    """
    normalized = [normalize_activity(a).model_dump(by_alias=True) for a in activities]
    values = {
        "categories": format_categories(config.categories),
        "vouchMultiplier": _format_number(config.multipliers.vouch),
        "reviewMultiplier": _format_number(config.multipliers.review),
        "activities": json.dumps(normalized, indent=2, ensure_ascii=False),
    }

    template = config.prompt.user
    missing = set(values) - set(_PLACEHOLDER.findall(template))
    if missing:
        raise ConfigurationError(f"User prompt template is missing placeholders: {sorted(missing)}")

    # Single pass so placeholder-like text inside activity content is left alone.
    user_prompt = _PLACEHOLDER.sub(lambda m: values[m.group(1)], template)
    return config.prompt.system, user_prompt
