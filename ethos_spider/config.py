"""Static analysis configuration: category taxonomy, prompts, multipliers, model settings.

Runtime settings (API keys, endpoints, timeouts) are read from the environment
at call time via the helpers at the bottom of this module.
"""
import os

from pydantic import BaseModel, ConfigDict


class AnalysisCategory(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str


class PromptTemplates(BaseModel):
    model_config = ConfigDict(frozen=True)

    system: str
    user: str


class ScoreThreshold(BaseModel):
    model_config = ConfigDict(frozen=True)

    minimal: int  # reviewer scores below this have minimal impact
    high: int     # reviewer scores above this have high impact


class Multipliers(BaseModel):
    model_config = ConfigDict(frozen=True)

    review: float
    vouch: float
    score_threshold: ScoreThreshold


class ModelSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str
    max_tokens: int
    temperature: float


class AnalysisConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    categories: tuple[AnalysisCategory, ...]
    prompt: PromptTemplates
    multipliers: Multipliers
    llm: ModelSettings


SYSTEM_PROMPT = """You are an expert analyst tasked with evaluating a person's characteristics based on peer reviews and vouches from the Ethos network.

Your goal is to analyze the provided reviews and vouches to determine how well the person matches specific personality and professional categories.

CRITICAL SCORING PRINCIPLES:
1. BE CONSERVATIVE: Only assign scores when there is clear evidence in the reviews/vouches
2. USE 0.0: If there is NO evidence or mention of a category, return 0.0 (not 0.1 or any other low score)
3. BE PRECISE: Use precise decimals (e.g., 0.73, 0.42) rather than round increments (0.1, 0.2, etc.)
4. EVIDENCE-BASED: Base scores only on what is explicitly mentioned or strongly implied in the content

WEIGHTING FACTORS:
- Reviewer credibility score (higher = more reliable)
- Vouches carry more weight than reviews (financial stake involved)
- Multiple consistent mentions increase confidence
- Quality and detail of the review content

Return your analysis as a JSON object with category names as keys and confidence scores (0.0 to 1.0) as values."""

USER_PROMPT = """Analyze the following reviews and vouches for a user and rate their alignment with these categories:

CATEGORIES:
{categories}

SCORING METHODOLOGY:
- 0.0: No evidence whatsoever (use this liberally for unmentioned categories)
- 0.01-0.15: Minimal/weak evidence or passing mention
- 0.16-0.35: Some evidence but not prominent
- 0.36-0.60: Clear evidence with multiple mentions or good detail
- 0.61-0.85: Strong evidence with consistent patterns across reviews
- 0.86-1.0: Overwhelming evidence, primary defining characteristic

REVIEWER WEIGHT:
- Scores below 1500: Minimal credibility weight (0.5x)
- Scores 1500-2000: Moderate credibility weight (1.0x)
- Scores 2000+: High credibility weight (1.5x)
- Reviews: {reviewMultiplier}x multiplier on top of credibility weight
- Vouches: Additional {vouchMultiplier}x multiplier on top of credibility weight

ACTIVITIES TO ANALYZE:
{activities}

Return ONLY a JSON object with precise confidence scores (0.0 to 1.0) for each category. Use precise decimals, not round increments. Be conservative - when in doubt, score lower or use 0.0."""

# Order is the order categories appear in the prompt.
_CATEGORIES = (
    ("Degen", "High-risk, high-reward mentality - early adopter of new protocols and trends"),
    ("Collab manager", "ONLY score if explicitly mentioned as 'collab manager', 'CM', or similar collaboration management role terms. Requires specific mention of these exact terms."),
    ("Builder", "Actively creates and ships products, tools, or services that provide value"),
    ("Influencer", "Influences others through insights, analysis, and forward-thinking perspectives"),
    ("Founders", "Entrepreneurial leaders who start and build companies, projects, or initiatives from the ground up"),
    ("Angel investors", "Early-stage investors who provide capital, mentorship, and strategic guidance to startups and emerging projects"),
    ("Content creator", "Creates various types of content including videos, articles, research, thought leadership, or educational materials"),
    ("Artists", "Creative individuals who produce original visual, audio, or digital art and contribute to the cultural ecosystem"),
    ("Marketers", "ONLY score if explicitly mentioned as 'marketer', 'marketing', or similar marketing role terms. Requires specific mention of these exact terms."),
    ("Alpha Callers", "ONLY score if explicitly mentioned as 'alpha caller', 'alpha', 'calls alpha', or similar alpha-calling terms. Requires specific mention of these exact terms."),
    ("Developers", "ONLY score if explicitly mentioned as 'developer', 'dev', 'coder', 'programmer', or similar development role terms. Requires specific mention of these exact terms."),
    ("Farmers", "Savvy opportunists who strategically participate in protocols and campaigns to maximize airdrops and rewards"),
    ("Shitposters", "High-engagement social media users who frequently post, reply, and engage with content across platforms like Twitter"),
    ("KOL Managers", "Behind-the-scenes operators who manage influencers, coordinate partnerships, and handle business development for key opinion leaders"),
    ("Art collectors", "Enthusiasts who collect, curate, and trade digital or physical art, often with deep knowledge of artistic trends and creators"),
    ("Scammers", "Individuals who engage in fraudulent activities, deceptive practices, or malicious behavior within the ecosystem"),
)

ANALYSIS_CONFIG = AnalysisConfig(
    categories=tuple(AnalysisCategory(name=n, description=d) for n, d in _CATEGORIES),
    prompt=PromptTemplates(system=SYSTEM_PROMPT, user=USER_PROMPT),
    multipliers=Multipliers(
        review=1.0,
        vouch=2.0,
        score_threshold=ScoreThreshold(minimal=1200, high=2000),
    ),
    llm=ModelSettings(
        model="anthropic/claude-3.5-sonnet",
        max_tokens=1000,
        temperature=0.3,
    ),
)


# ── Environment ──────────────────────────────────────────────────────────────

def ethos_api_v1() -> str:
    return os.getenv("ETHOS_API_BASE_V1", "https://api.ethos.network/api/v1").rstrip("/")


def ethos_api_v2() -> str:
    return os.getenv("ETHOS_API_BASE_V2", "https://api.ethos.network/api/v2").rstrip("/")


def ethos_timeout() -> float:
    return float(os.getenv("ETHOS_HTTP_TIMEOUT", "30"))


def openrouter_base_url() -> str:
    return os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1").rstrip("/")


def openrouter_timeout() -> float:
    return float(os.getenv("OPENROUTER_TIMEOUT", "120"))


def openrouter_api_key() -> str | None:
    return os.getenv("OPENROUTER_API_KEY") or None


def public_url() -> str:
    return os.getenv("PUBLIC_URL", "https://ethos-spidergraph.deno.dev")


def cache_db_path() -> str:
    return os.getenv("CACHE_DB_PATH", "ethos_spider.db")
