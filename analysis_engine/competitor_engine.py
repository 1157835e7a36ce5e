"""Competitor identification, tracking and competitive-gap analysis."""

import asyncio
import hashlib
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd
from pydantic import ValidationError

from .context import AnalysisContext, ReentrancyGuard
from .errors import CompetitorNotFoundError, DuplicateCompetitorError
from .models import (
    CompetitorProfile,
    CompetitorState,
    CompetitorView,
    ContentItem,
    GapAnalysis,
    OpportunityLevel,
    PerformanceScore,
    Record,
    utc_now,
)
from .niches import PREFERRED_NICHES, UNCLASSIFIED_NICHE, determine_niche, get_niche_keywords
from .text_heuristics import coerce_float, coerce_int, optional_str, serialize_payload, top_tokens
from .trend_engine import as_records

logger = logging.getLogger(__name__)

STATE_NAME = "competitors"

SOCIAL_PLATFORMS = ("twitter", "pinterest", "tiktok")
TWITTER_MIN_FOLLOWERS = 1000
PINTEREST_MIN_SAVES = 100
TIKTOK_MIN_FOLLOWERS = 5000
GENERIC_MIN_MENTIONS = 2

HIGH_OPPORTUNITY_MAX = 3  # fewer competitors than this is a high opportunity
LOW_OPPORTUNITY_MIN = 10  # more competitors than this is a low opportunity
CONTENT_GAP_SHARE = 0.05

COMPARISON_RE = re.compile(
    r"\b(?:competitor|similar to|alternative to|vs|versus|compared to|better than|like|such as)\.?\s+([\w.-]+)"
)
HASHTAG_RE = re.compile(r"#(\w+)")
ENGAGEMENT_METRICS = ("likes", "retweets", "replies", "comments", "shares", "saves")

CompetitorKey = Tuple[str, str, str]


def competitor_key(platform: str, platform_id: Optional[str], name: str) -> CompetitorKey:
    """``(platform, "id", platform_id)`` when an id is known, else ``(platform, "name", name)``."""
    if platform_id:
        return platform, "id", str(platform_id)
    return platform, "name", name


def competitor_id_for(key: CompetitorKey) -> str:
    digest = hashlib.sha1("|".join(key).encode("utf-8")).hexdigest()
    return f"competitor_{digest[:12]}"


def audience_of(profile: CompetitorProfile) -> float:
    metric = "saves" if profile.platform == "pinterest" else "followers"
    return float(profile.metrics.get(metric, 0.0))


def item_engagement(item: ContentItem) -> int:
    return sum(coerce_int(item.metrics.get(name)) for name in ENGAGEMENT_METRICS)


class CompetitorRegistry:
    """Identity index from ``(platform, kind, value)`` keys to competitor ids."""

    def __init__(self):
        self._ids: Dict[CompetitorKey, str] = {}

    @classmethod
    def from_profiles(cls, profiles: Iterable[CompetitorProfile]) -> "CompetitorRegistry":
        registry = cls()
        for profile in profiles:
            registry.register(registry.key_of(profile), profile.id)
        return registry

    @staticmethod
    def key_of(profile: CompetitorProfile) -> CompetitorKey:
        return competitor_key(profile.platform, profile.platform_id, profile.name)

    def get(self, key: CompetitorKey) -> Optional[str]:
        return self._ids.get(key)

    def register(self, key: CompetitorKey, competitor_id: str) -> None:
        self._ids[key] = competitor_id

    def discard(self, competitor_id: str) -> None:
        self._ids = {key: value for key, value in self._ids.items() if value != competitor_id}

    def __len__(self) -> int:
        return len(self._ids)


def metrics_from(value: Any) -> Dict[str, float]:
    """Coerce a user-supplied metrics mapping; anything else is a ValueError."""
    if not value:
        return {}
    if not isinstance(value, dict):
        raise ValueError("'metrics' must be a mapping of metric name to number")
    return {str(key): coerce_float(item) for key, item in value.items()}


def content_from(value: Any) -> List[ContentItem]:
    if not value:
        return []
    if not isinstance(value, list):
        raise ValueError("'content' must be a list of content items")
    return [ContentItem.model_validate(item) for item in value]


@dataclass
class CompetitorCandidate:
    """A competitor as seen in one record, before it is merged into the state."""

    platform: str
    name: str
    platform_id: Optional[str] = None
    url: str = ""
    description: str = ""
    niche: Optional[str] = None
    niche_text: str = ""
    metrics: Dict[str, float] = field(default_factory=dict)
    content: List[ContentItem] = field(default_factory=list)

    @property
    def key(self) -> CompetitorKey:
        return competitor_key(self.platform, self.platform_id, self.name)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompetitorCandidate":
        name = optional_str(data.get("name"))
        platform = optional_str(data.get("platform"))
        if not name or not platform:
            raise ValueError("A competitor needs both 'name' and 'platform'")
        return cls(
            platform=platform.lower(),
            name=name,
            platform_id=optional_str(data.get("platform_id") or data.get("platformId")),
            url=str(data.get("url") or ""),
            description=str(data.get("description") or ""),
            niche=optional_str(data.get("niche")),
            niche_text=f"{name} {data.get('description') or ''}",
            metrics=metrics_from(data.get("metrics")),
            content=content_from(data.get("content")),
        )


# ---------------------------------------------------------------------------
# Per-platform extraction
# ---------------------------------------------------------------------------


def twitter_candidate(tweet: Dict[str, Any]) -> Optional[CompetitorCandidate]:
    user = tweet.get("user")
    if not isinstance(user, dict):
        return None
    followers = coerce_int(user.get("followers_count"))
    if followers < TWITTER_MIN_FOLLOWERS:
        return None

    handle = user.get("screen_name") or user.get("username") or ""
    tweet_metrics = tweet.get("metrics") or {}
    metrics = {
        "followers": float(followers),
        "engagement": float(sum(coerce_int(tweet_metrics.get(name)) for name in ("likes", "retweets", "replies"))),
    }
    if user.get("statuses_count") is not None:
        metrics["tweets"] = float(coerce_int(user.get("statuses_count")))

    text = str(tweet.get("text") or "")
    description = str(user.get("description") or "")
    return CompetitorCandidate(
        platform="twitter",
        name=str(user.get("name") or handle or "unknown"),
        platform_id=optional_str(user.get("id")),
        url=f"https://twitter.com/{handle}" if handle else "",
        description=description,
        niche_text=f"{text} {description}",
        metrics=metrics,
        content=[
            ContentItem(
                type="tweet",
                id=optional_str(tweet.get("id")),
                url=optional_str(tweet.get("url")),
                description=text,
                metrics=dict(tweet_metrics),
            )
        ],
    )


def pinterest_candidate(pin: Dict[str, Any]) -> Optional[CompetitorCandidate]:
    pin_metrics = pin.get("metrics") or {}
    if coerce_int(pin_metrics.get("saves")) < PINTEREST_MIN_SAVES:
        return None

    creator = pin.get("creator")
    if isinstance(creator, dict):
        creator = creator.get("name") or creator.get("username")
    name = str(creator or "Unknown Creator")
    title = str(pin.get("title") or "")
    description = str(pin.get("description") or "")
    return CompetitorCandidate(
        platform="pinterest",
        name=name,
        url=str(pin.get("link") or ""),
        niche_text=f"{title} {description}",
        content=[
            ContentItem(
                type="pin",
                id=optional_str(pin.get("id")),
                url=optional_str(pin.get("link")),
                title=title,
                description=description,
                image=optional_str(pin.get("image")),
                metrics=dict(pin_metrics),
            )
        ],
    )


def tiktok_candidate(video: Dict[str, Any]) -> Optional[CompetitorCandidate]:
    author = video.get("author")
    if not isinstance(author, dict):
        return None
    followers = coerce_int(author.get("followers"))
    if followers < TIKTOK_MIN_FOLLOWERS:
        return None

    username = str(author.get("username") or author.get("name") or "unknown")
    video_metrics = video.get("metrics") or {}
    description = str(video.get("description") or "")
    return CompetitorCandidate(
        platform="tiktok",
        name=username,
        platform_id=optional_str(author.get("id")),
        url=f"https://tiktok.com/@{username}",
        niche_text=description,
        metrics={
            "followers": float(followers),
            "engagement": float(sum(coerce_int(video_metrics.get(name)) for name in ("likes", "comments", "shares"))),
        },
        content=[
            ContentItem(
                type="video",
                id=optional_str(video.get("id")),
                url=optional_str(video.get("url")),
                description=description,
                metrics=dict(video_metrics),
            )
        ],
    )


def generic_candidates(record: Record) -> List[CompetitorCandidate]:
    """Names following comparison phrases ("vs", "alternative to", ...) mentioned at least twice."""
    results = record.results
    if not isinstance(results, list):
        return []

    mentions: Counter = Counter()
    for item in results:
        text = serialize_payload(item).lower()
        for match in COMPARISON_RE.finditer(text):
            name = match.group(1).strip(".-")
            if len(name) > 3:
                mentions[name] += 1

    context = f"{record.query} {serialize_payload(results)}"
    return [
        CompetitorCandidate(
            platform=record.source,
            name=name,
            niche_text=context,
            metrics={"mentions": float(count)},
        )
        for name, count in mentions.items()
        if count >= GENERIC_MIN_MENTIONS
    ]


EXTRACTORS: Dict[str, Callable[[Dict[str, Any]], Optional[CompetitorCandidate]]] = {
    "twitter": twitter_candidate,
    "pinterest": pinterest_candidate,
    "tiktok": tiktok_candidate,
}


def append_content(profile: CompetitorProfile, items: List[ContentItem]) -> int:
    """Append *items* not already on *profile*; returns how many were added."""
    known = {item.dedupe_key for item in profile.content}
    added = 0
    for item in items:
        if item.dedupe_key in known:
            continue
        known.add(item.dedupe_key)
        profile.content.append(item)
        added += 1
    return added


def refresh_derived_metrics(profile: CompetitorProfile) -> None:
    """Recompute the metrics that follow from the tracked content."""
    if profile.platform == "pinterest":
        pins = [item for item in profile.content if item.type == "pin"]
        if pins:
            profile.metrics["pins"] = float(len(pins))
            profile.metrics["saves"] = float(sum(coerce_int(item.metrics.get("saves")) for item in pins))
            profile.metrics["comments"] = float(sum(coerce_int(item.metrics.get("comments")) for item in pins))
    elif profile.platform == "tiktok":
        videos = sum(1 for item in profile.content if item.type == "video")
        if videos:
            profile.metrics["videos"] = float(videos)
    elif profile.platform == "twitter":
        tweets = sum(1 for item in profile.content if item.type == "tweet")
        profile.metrics["tweets"] = max(profile.metrics.get("tweets", 0.0), float(tweets))


def opportunity_for(count: int) -> OpportunityLevel:
    if count < HIGH_OPPORTUNITY_MAX:
        return OpportunityLevel.HIGH
    if count > LOW_OPPORTUNITY_MIN:
        return OpportunityLevel.LOW
    return OpportunityLevel.MEDIUM


def recommendation_for(niche: str, level: OpportunityLevel, count: int, gaps: List[str]) -> str:
    focus = ", ".join(gaps[:3]) if gaps else "the niche's core topics"
    if level == OpportunityLevel.HIGH:
        return f"Low competition in {niche} ({count} tracked competitors). Move in early with content on {focus}."
    if level == OpportunityLevel.MEDIUM:
        return f"Moderate competition in {niche} ({count} tracked competitors). Differentiate with content on {focus}."
    return f"Crowded niche: {niche} has {count} tracked competitors. Only enter with a distinct angle on {focus}."


class CompetitorEngine:
    """Tracks competitors found in social records and scores them per niche."""

    def __init__(self, context: AnalysisContext, niches: Optional[List[str]] = None):
        self.context = context
        self.niches = list(niches or PREFERRED_NICHES)
        self.state = CompetitorState()
        self.registry = CompetitorRegistry()
        self.guard = ReentrancyGuard("competitor-engine")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> bool:
        document = self.context.state_store.load(STATE_NAME)
        state = CompetitorState()
        loaded = False
        if document is not None:
            try:
                state = CompetitorState.model_validate(document)
                loaded = True
            except ValidationError as e:
                logger.warning(f"Discarding unreadable competitor state: {e}")
        self.state = state
        self.registry = CompetitorRegistry.from_profiles(state.competitors.values())
        if loaded:
            logger.info(f"Loaded competitor state: {len(state.competitors)} competitors")
        return loaded

    def save(self) -> bool:
        return self.context.state_store.save(STATE_NAME, self.state.model_dump(mode="json"))

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def analyze_all_data(self, records: Optional[Iterable[Any]] = None) -> Dict[str, Any]:
        """Identify competitors in *records* (default: the record store) and re-run every analysis."""
        async with self.guard.hold():
            snapshot = as_records(records if records is not None else self.context.record_store.search())
            if not snapshot:
                return {"success": False, "message": "No data available for analysis"}

            working = self.state.model_copy(deep=True)
            registry = CompetitorRegistry.from_profiles(working.competitors.values())
            try:
                seen = self._identify_competitors(working, registry, snapshot)
                await asyncio.sleep(0)
                working.strategies = self._analyze_strategies(working)
                await asyncio.sleep(0)
                working.content = self._analyze_content(working)
                await asyncio.sleep(0)
                working.performance = self._analyze_performance(working)
                await asyncio.sleep(0)
                working.niches = self._analyze_niches(working)
            except Exception as e:
                logger.error(f"Competitor analysis failed: {e}")
                return {"success": False, "message": f"Competitor analysis failed: {e}"}

            self.state = working
            self.registry = registry
            self.save()

            logger.info(f"Competitor analysis complete: {seen} seen, {len(working.competitors)} tracked")
            return {
                "success": True,
                "message": f"Identified {seen} competitors; tracking {len(working.competitors)}",
                "competitors": [profile.model_dump(mode="json") for profile in working.competitors.values()],
            }

    def _identify_competitors(self, state: CompetitorState, registry: CompetitorRegistry, snapshot: List[Record]) -> int:
        seen = set()
        for record in snapshot:
            if record.category != "socialMedia" and record.source not in SOCIAL_PLATFORMS:
                continue
            results = record.results
            if not isinstance(results, list):
                continue

            extractor = EXTRACTORS.get(record.source)
            if extractor is None:
                try:
                    candidates = generic_candidates(record)
                except (TypeError, ValueError) as e:
                    logger.warning(f"Skipping record {record.id}: {e}")
                    continue
                for candidate in candidates:
                    seen.add(self._upsert(state, registry, candidate).id)
                continue

            for item in results:
                try:
                    candidate = extractor(item) if isinstance(item, dict) else None
                except (AttributeError, KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Skipping malformed {record.source} item in {record.id}: {e}")
                    continue
                if candidate is not None:
                    seen.add(self._upsert(state, registry, candidate).id)
        return len(seen)

    def _upsert(self, state: CompetitorState, registry: CompetitorRegistry, candidate: CompetitorCandidate) -> CompetitorProfile:
        now = utc_now()
        existing_id = registry.get(candidate.key)
        profile = state.competitors.get(existing_id) if existing_id else None

        if profile is not None:
            profile.metrics.update(candidate.metrics)
            append_content(profile, candidate.content)
            profile.last_updated = now
        else:
            competitor_id = competitor_id_for(candidate.key)
            suffix = 1
            while competitor_id in state.competitors:
                suffix += 1
                competitor_id = f"{competitor_id_for(candidate.key)}_{suffix}"
            profile = CompetitorProfile(
                id=competitor_id,
                name=candidate.name,
                url=candidate.url,
                platform=candidate.platform,
                platform_id=candidate.platform_id,
                niche=candidate.niche or determine_niche(candidate.niche_text, self.niches),
                description=candidate.description,
                metrics=dict(candidate.metrics),
                added=now,
                last_updated=now,
            )
            append_content(profile, candidate.content)
            state.competitors[competitor_id] = profile
            registry.register(candidate.key, competitor_id)
            logger.debug(f"New competitor {profile.name} ({profile.platform}) in {profile.niche}")

        refresh_derived_metrics(profile)
        return profile

    def _analyze_strategies(self, state: CompetitorState) -> Dict[str, Dict[str, Any]]:
        strategies = {}
        for profile in state.competitors.values():
            mix = Counter(item.type for item in profile.content)
            text = " ".join(f"{item.title} {item.description}" for item in profile.content)
            hashtags = Counter(tag.lower() for tag in HASHTAG_RE.findall(text))
            strategies[profile.id] = {
                "competitor_id": profile.id,
                "name": profile.name,
                "platform": profile.platform,
                "niche": profile.niche,
                "content_mix": dict(mix),
                "primary_content_type": mix.most_common(1)[0][0] if mix else None,
                "hashtags": [tag for tag, _ in hashtags.most_common(10)],
                "top_keywords": top_tokens(text),
                "content_volume": len(profile.content),
            }
        return strategies

    def _analyze_content(self, state: CompetitorState) -> Dict[str, Dict[str, Any]]:
        content = {}
        for niche in self.niches:
            members = [profile for profile in state.competitors.values() if profile.niche == niche]
            items = [(profile, item) for profile in members for item in profile.content]
            ranked = sorted(items, key=lambda pair: item_engagement(pair[1]), reverse=True)
            content[niche] = {
                "total_items": len(items),
                "by_type": dict(Counter(item.type for _, item in items)),
                "top_keywords": top_tokens(" ".join(f"{item.title} {item.description}" for _, item in items)),
                "top_content": [
                    {
                        "competitor_id": profile.id,
                        "type": item.type,
                        "title": item.title or item.description[:80],
                        "url": item.url,
                        "engagement": item_engagement(item),
                    }
                    for profile, item in ranked[:5]
                ],
            }
        return content

    def _analyze_performance(self, state: CompetitorState) -> Dict[str, PerformanceScore]:
        """Score = 40% relative audience + 20% relative volume + 40% engagement rate."""
        if not state.competitors:
            return {}

        frame = pd.DataFrame(
            [
                {
                    "competitor_id": profile.id,
                    "audience": audience_of(profile),
                    "content_volume": len(profile.content),
                    "engagement": float(profile.metrics.get("engagement", profile.metrics.get("comments", 0.0))),
                }
                for profile in state.competitors.values()
            ]
        )

        max_audience = frame["audience"].max()
        max_volume = frame["content_volume"].max()
        audience_share = frame["audience"] / max_audience if max_audience > 0 else 0.0
        volume_share = frame["content_volume"] / max_volume if max_volume > 0 else 0.0
        rate = np.where(frame["audience"] > 0, frame["engagement"] / frame["audience"].where(frame["audience"] > 0, 1), 0.0)
        frame["engagement_rate"] = np.clip(rate, 0.0, 1.0)
        frame["score"] = (100 * (0.4 * audience_share + 0.2 * volume_share + 0.4 * frame["engagement_rate"])).round(1)

        frame = frame.sort_values(["score", "audience"], ascending=False, kind="mergesort").reset_index(drop=True)
        frame["rank"] = frame.index + 1

        return {
            row["competitor_id"]: PerformanceScore(
                competitor_id=row["competitor_id"],
                score=float(row["score"]),
                audience=float(row["audience"]),
                content_volume=int(row["content_volume"]),
                engagement_rate=round(float(row["engagement_rate"]), 4),
                rank=int(row["rank"]),
            )
            for row in frame.to_dict(orient="records")
        }

    def _analyze_niches(self, state: CompetitorState) -> Dict[str, Dict[str, Any]]:
        niches = {}
        for niche in self.niches:
            members = [profile for profile in state.competitors.values() if profile.niche == niche]
            scores = [state.performance[p.id] for p in members if p.id in state.performance]
            ranked = sorted(scores, key=lambda score: score.rank)
            niches[niche] = {
                "competitor_count": len(members),
                "platforms": sorted({profile.platform for profile in members}),
                "average_score": round(sum(s.score for s in scores) / len(scores), 1) if scores else 0.0,
                "top_competitors": [score.competitor_id for score in ranked[:3]],
            }
        return niches

    def _recompute(self) -> None:
        self.state.strategies = self._analyze_strategies(self.state)
        self.state.content = self._analyze_content(self.state)
        self.state.performance = self._analyze_performance(self.state)
        self.state.niches = self._analyze_niches(self.state)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_competitor(self, data: Dict[str, Any]) -> CompetitorProfile:
        """Track a competitor given as a dict; an already tracked identity is merged instead."""
        candidate = CompetitorCandidate.from_dict(data)
        profile = self._upsert(self.state, self.registry, candidate)
        self._recompute()
        return profile

    def update_competitor(self, competitor_id: str, updates: Dict[str, Any]) -> CompetitorProfile:
        """Apply *updates* to a copy and swap it in only when the whole update is valid."""
        current = self.state.competitors.get(competitor_id)
        if current is None:
            raise CompetitorNotFoundError(competitor_id)
        metrics = metrics_from(updates.get("metrics"))
        content = content_from(updates.get("content"))

        profile = current.model_copy(deep=True)
        for name in ("name", "url", "platform", "niche", "description"):
            if updates.get(name) is not None:
                setattr(profile, name, str(updates[name]))
        if "platform_id" in updates or "platformId" in updates:
            profile.platform_id = optional_str(updates.get("platform_id", updates.get("platformId")))
        profile.metrics.update(metrics)
        append_content(profile, content)
        refresh_derived_metrics(profile)

        key = CompetitorRegistry.key_of(profile)
        owner = self.registry.get(key)
        if owner is not None and owner != competitor_id:
            raise DuplicateCompetitorError(key, owner)

        profile.last_updated = utc_now()
        self.state.competitors[competitor_id] = profile
        self.registry.discard(competitor_id)
        self.registry.register(key, competitor_id)
        self._recompute()
        return profile

    def remove_competitor(self, competitor_id: str) -> bool:
        if competitor_id not in self.state.competitors:
            raise CompetitorNotFoundError(competitor_id)
        del self.state.competitors[competitor_id]
        self.registry.discard(competitor_id)
        self._recompute()
        return True

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_competitor(self, competitor_id: str) -> Optional[CompetitorProfile]:
        return self.state.competitors.get(competitor_id)

    def get_all_competitors(self) -> List[CompetitorProfile]:
        return list(self.state.competitors.values())

    def get_competitors_by_niche(self, niche: str) -> List[CompetitorProfile]:
        return [profile for profile in self.state.competitors.values() if profile.niche == niche]

    def get_competitors_by_platform(self, platform: str) -> List[CompetitorProfile]:
        return [profile for profile in self.state.competitors.values() if profile.platform == platform]

    def get_unclassified_competitors(self) -> List[CompetitorProfile]:
        return self.get_competitors_by_niche(UNCLASSIFIED_NICHE)

    def get_competitive_gap_analysis(self) -> Dict[str, GapAnalysis]:
        """Opportunity level and under-covered keywords for every configured niche."""
        analysis = {}
        for niche in self.niches:
            members = self.get_competitors_by_niche(niche)
            texts = [f"{item.title} {item.description}".lower() for profile in members for item in profile.content]
            gaps = []
            for keyword in get_niche_keywords(niche):
                share = sum(1 for text in texts if keyword in text) / len(texts) if texts else 0.0
                if share < CONTENT_GAP_SHARE:
                    gaps.append(keyword)

            level = opportunity_for(len(members))
            analysis[niche] = GapAnalysis(
                niche=niche,
                competitor_count=len(members),
                opportunity_level=level,
                recommendation=recommendation_for(niche, level, len(members), gaps),
                content_gaps=gaps,
            )
        return analysis

    def view(self) -> CompetitorView:
        snapshot = self.state.model_copy(deep=True)
        return CompetitorView(
            competitors=list(snapshot.competitors.values()),
            performance=snapshot.performance,
            gap_analysis=self.get_competitive_gap_analysis(),
        )
