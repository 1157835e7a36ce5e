"""Pydantic data models used across the analysis engines."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, Field, field_validator

from .niches import PREFERRED_NICHES

DEFAULT_PLATFORMS: List[str] = ["pinterest", "tiktok", "twitter"]
DEFAULT_CONTENT_TYPES: List[str] = ["blog", "social", "video"]


def utc_now() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def _unique(values: List[str]) -> List[str]:
    seen = set()
    unique = []
    for value in values:
        if value not in seen:
            seen.add(value)
            unique.append(value)
    return unique


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class Record(BaseModel):
    """A single stored scrape result, e.g. one Twitter search for a query."""

    id: str = Field(..., description="category_source_timestamp")
    category: str = Field(..., description="Store category, e.g. 'socialMedia'")
    source: str = Field(..., description="Platform, network or site name, e.g. 'twitter'")
    timestamp: str = Field(..., description="ISO-8601 time the record was stored")
    payload: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("payload", "data"),
        description="Source-shaped body with 'query' and/or 'results'",
    )

    model_config = {
        "frozen": True,
    }

    @property
    def query(self) -> str:
        query = self.payload.get("query")
        return query if isinstance(query, str) else ""

    @property
    def results(self) -> Any:
        return self.payload.get("results")


# ---------------------------------------------------------------------------
# Trend profiles
# ---------------------------------------------------------------------------


class ProductRef(BaseModel):
    """Lightweight pointer to a product seen in a niche."""

    id: str
    title: str
    url: str = ""


class NicheProfile(BaseModel):
    niche: str
    popularity: int = Field(0, ge=0, description="Number of records matching the niche")
    growth: float = Field(0.0, description="Percent change between the last two popularity samples")
    keywords: List[str] = Field(default_factory=list)
    products: List[ProductRef] = Field(default_factory=list)
    history: List[int] = Field(default_factory=list, description="Rolling popularity samples, oldest first")
    last_updated: str = Field(default_factory=utc_now)


class KeywordProfile(BaseModel):
    keyword: str
    mentions: int = Field(0, ge=0)
    sentiment: float = Field(0.0, ge=-1.0, le=1.0)
    related_keywords: List[str] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)
    last_updated: str = Field(default_factory=utc_now)


class ProductProfile(BaseModel):
    id: str
    title: str
    description: str = ""
    price: float = 0.0
    url: str = ""
    image: str = ""
    source: str = "unknown"
    mentions: int = Field(0, ge=0)
    sentiment: float = Field(0.0, ge=-1.0, le=1.0)
    related_keywords: List[str] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)
    last_updated: str = Field(default_factory=utc_now)


class TrendState(BaseModel):
    """Everything the trend engine persists between sessions."""

    niches: Dict[str, NicheProfile] = Field(default_factory=dict)
    keywords: Dict[str, KeywordProfile] = Field(default_factory=dict)
    products: Dict[str, ProductProfile] = Field(default_factory=dict)
    timeframes: Dict[str, Dict[str, Any]] = Field(
        default_factory=lambda: {"daily": {}, "weekly": {}, "monthly": {}}
    )
    processed_records: List[str] = Field(default_factory=list, description="Record ids already counted")


class TrendView(BaseModel):
    """Read-only trend snapshot handed to the strategy generator."""

    niches: Dict[str, NicheProfile] = Field(default_factory=dict)
    keywords: Dict[str, KeywordProfile] = Field(default_factory=dict)
    products: Dict[str, ProductProfile] = Field(default_factory=dict)

    model_config = {
        "frozen": True,
    }


# ---------------------------------------------------------------------------
# Competitor profiles
# ---------------------------------------------------------------------------


class OpportunityLevel(str, Enum):
    """How under-served a niche is, from competitor density."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ContentItem(BaseModel):
    """A piece of competitor content (tweet, pin, video, ...)."""

    type: str
    id: Optional[str] = None
    url: Optional[str] = None
    title: str = ""
    description: str = ""
    image: Optional[str] = None
    metrics: Dict[str, Any] = Field(default_factory=dict)
    discovered: str = Field(default_factory=utc_now)

    @property
    def dedupe_key(self) -> Tuple[str, str]:
        return self.type, self.url or self.id or f"{self.title}|{self.description}"


class CompetitorProfile(BaseModel):
    id: str
    name: str
    url: str = ""
    platform: str
    platform_id: Optional[str] = None
    niche: str
    description: str = ""
    metrics: Dict[str, float] = Field(default_factory=dict)
    content: List[ContentItem] = Field(default_factory=list)
    added: str = Field(default_factory=utc_now)
    last_updated: str = Field(default_factory=utc_now)


class PerformanceScore(BaseModel):
    competitor_id: str
    score: float = Field(..., ge=0.0, le=100.0)
    audience: float = 0.0
    content_volume: int = 0
    engagement_rate: float = Field(0.0, ge=0.0, le=1.0)
    rank: int = 0


class GapAnalysis(BaseModel):
    niche: str
    competitor_count: int = Field(0, ge=0)
    opportunity_level: OpportunityLevel
    recommendation: str
    content_gaps: List[str] = Field(default_factory=list)


class CompetitorState(BaseModel):
    """Everything the competitor engine persists between sessions."""

    competitors: Dict[str, CompetitorProfile] = Field(default_factory=dict)
    strategies: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    content: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    performance: Dict[str, PerformanceScore] = Field(default_factory=dict)
    niches: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class CompetitorView(BaseModel):
    """Read-only competitor snapshot handed to the strategy generator."""

    competitors: List[CompetitorProfile] = Field(default_factory=list)
    performance: Dict[str, PerformanceScore] = Field(default_factory=dict)
    gap_analysis: Dict[str, GapAnalysis] = Field(default_factory=dict)

    model_config = {
        "frozen": True,
    }


# ---------------------------------------------------------------------------
# Strategy options
# ---------------------------------------------------------------------------


class StrategyOptions(BaseModel):
    """User-facing knobs for strategy generation; unknown fields are ignored."""

    budget: float = Field(20.0, ge=0, description="Initial budget in dollars")
    timeframe: int = Field(90, gt=0, description="Planning horizon in days")
    platforms: List[str] = Field(default_factory=lambda: list(DEFAULT_PLATFORMS))
    focus_niches: List[str] = Field(
        default_factory=lambda: list(PREFERRED_NICHES),
        validation_alias=AliasChoices("focus_niches", "focusNiches"),
    )
    content_types: List[str] = Field(
        default_factory=lambda: list(DEFAULT_CONTENT_TYPES),
        validation_alias=AliasChoices("content_types", "contentTypes"),
    )
    goal_income: float = Field(
        10000.0, ge=0, validation_alias=AliasChoices("goal_income", "goalIncome"), description="Monthly income goal"
    )
    weekly_hours: float = Field(
        10.0, gt=0, validation_alias=AliasChoices("weekly_hours", "weeklyHours"), description="Hours available per week"
    )

    model_config = {
        "extra": "ignore",
    }

    @field_validator("platforms", "content_types")
    @classmethod
    def _normalise_names(cls, values: List[str]) -> List[str]:
        return _unique([value.strip().lower() for value in values if value and value.strip()])

    @field_validator("focus_niches")
    @classmethod
    def _dedupe_niches(cls, values: List[str]) -> List[str]:
        return _unique([value.strip() for value in values if value and value.strip()])
