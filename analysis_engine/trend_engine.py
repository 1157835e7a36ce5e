"""Trend statistics over the record store: niches, keywords, products and timeframes."""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Set

import pandas as pd
from pydantic import ValidationError

from .context import AnalysisContext, ReentrancyGuard
from .models import (
    KeywordProfile,
    NicheProfile,
    ProductProfile,
    ProductRef,
    Record,
    TrendState,
    TrendView,
    utc_now,
)
from .niches import PREFERRED_NICHES, matches_niche, matching_niches
from .text_heuristics import (
    extract_products,
    merge_unique,
    sentiment_of_text,
    serialize_payload,
    top_tokens,
)

logger = logging.getLogger(__name__)

STATE_NAME = "trends"
GROWTH_WINDOW = 5
TIMEFRAMES = ("daily", "weekly", "monthly")

# Predicted growth beyond +/- this many percent counts as a direction change.
DIRECTION_THRESHOLD = 1.0


def as_records(records: Iterable[Any]) -> List[Record]:
    """Coerce dicts to :class:`Record` and drop duplicate ids, keeping the first."""
    seen: Set[str] = set()
    coerced = []
    for item in records:
        try:
            record = item if isinstance(item, Record) else Record.model_validate(item)
        except ValidationError as e:
            logger.warning(f"Skipping malformed record: {e}")
            continue
        if record.id in seen:
            continue
        seen.add(record.id)
        coerced.append(record)
    return coerced


def results_text(record: Record) -> str:
    results = record.results
    return serialize_payload(results) if results is not None else ""


def compute_growth(history: List[int]) -> float:
    """Percent change between the last two popularity samples."""
    if len(history) < 2:
        return 0.0
    previous, current = history[-2], history[-1]
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 2)


def direction_of(growth: float) -> str:
    if growth > DIRECTION_THRESHOLD:
        return "rising"
    if growth < -DIRECTION_THRESHOLD:
        return "declining"
    return "stable"


class TrendEngine:
    """Derives trend statistics from the records of an :class:`AnalysisContext`.

    Counters only grow for records the engine has not counted before, so
    re-running over the same records (or after a save/load round trip)
    leaves them unchanged.
    """

    def __init__(self, context: AnalysisContext, niches: Optional[List[str]] = None):
        self.context = context
        self.niches = list(niches or PREFERRED_NICHES)
        self.state = self._initial_state()
        self.guard = ReentrancyGuard("trend-engine")

    def _initial_state(self) -> TrendState:
        return TrendState(niches={niche: NicheProfile(niche=niche) for niche in self.niches})

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> bool:
        """Restore persisted state; falls back to an empty tree."""
        document = self.context.state_store.load(STATE_NAME)
        if document is None:
            self.state = self._initial_state()
            return False
        try:
            state = TrendState.model_validate(document)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable trend state: {e}")
            self.state = self._initial_state()
            return False

        for niche in self.niches:
            state.niches.setdefault(niche, NicheProfile(niche=niche))
        self.state = state
        logger.info(f"Loaded trend state: {len(state.keywords)} keywords, {len(state.products)} products")
        return True

    def save(self) -> bool:
        return self.context.state_store.save(STATE_NAME, self.state.model_dump(mode="json"))

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def analyze_all(self, records: Optional[Iterable[Any]] = None) -> Dict[str, Any]:
        """Run every trend pass over *records* (default: the whole record store)."""
        async with self.guard.hold():
            snapshot = as_records(records if records is not None else self.context.record_store.search())
            if not snapshot:
                return {"success": False, "message": "No data available for trend analysis"}

            working = self.state.model_copy(deep=True)
            processed = set(working.processed_records)
            fresh_ids = {record.id for record in snapshot if record.id not in processed}

            try:
                self._analyze_by_niche(working, snapshot, fresh_ids)
                await asyncio.sleep(0)
                self._analyze_by_keyword(working, snapshot, fresh_ids)
                await asyncio.sleep(0)
                self._analyze_by_product(working, snapshot, fresh_ids)
                await asyncio.sleep(0)
                self._analyze_by_timeframe(working, snapshot)
            except Exception as e:
                logger.error(f"Trend analysis failed: {e}")
                return {"success": False, "message": f"Trend analysis failed: {e}"}

            working.processed_records.extend(record.id for record in snapshot if record.id in fresh_ids)
            self.state = working
            self.save()

            logger.info(f"Trend analysis complete: {len(snapshot)} records, {len(fresh_ids)} new")
            return {
                "success": True,
                "message": f"Analyzed {len(snapshot)} records ({len(fresh_ids)} new)",
                "trends": self.view().model_dump(mode="json"),
            }

    def _analyze_by_niche(self, state: TrendState, snapshot: List[Record], fresh_ids: Set[str]) -> None:
        now = utc_now()
        for niche in self.niches:
            profile = state.niches.setdefault(niche, NicheProfile(niche=niche))
            known_products = {product.id for product in profile.products}

            for record in snapshot:
                if record.id not in fresh_ids:
                    continue
                try:
                    text = results_text(record)
                    if not matches_niche(niche, record.query, text):
                        continue
                    profile.popularity += 1
                    merge_unique(profile.keywords, top_tokens(text))
                    for product in extract_products(record.results, record.source):
                        if product["id"] not in known_products:
                            known_products.add(product["id"])
                            profile.products.append(
                                ProductRef(id=product["id"], title=product["title"], url=product["url"])
                            )
                    profile.last_updated = now
                except (TypeError, ValueError) as e:
                    logger.warning(f"Skipping record {record.id} in niche pass: {e}")

            if fresh_ids:
                profile.history = (profile.history + [profile.popularity])[-GROWTH_WINDOW:]
            profile.growth = compute_growth(profile.history)

    def _analyze_by_keyword(self, state: TrendState, snapshot: List[Record], fresh_ids: Set[str]) -> None:
        now = utc_now()
        texts: Dict[str, List[str]] = {}

        for record in snapshot:
            if not record.query.strip():
                continue
            try:
                keyword = record.query.lower()
                text = results_text(record)
                texts.setdefault(keyword, []).append(text)

                profile = state.keywords.setdefault(keyword, KeywordProfile(keyword=keyword))
                if record.id in fresh_ids:
                    profile.mentions += 1
                    merge_unique(profile.sources, [record.source])
                    merge_unique(profile.related_keywords, [token for token in top_tokens(text) if token != keyword])
                    profile.last_updated = now
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping record {record.id} in keyword pass: {e}")

        for keyword, chunks in texts.items():
            state.keywords[keyword].sentiment = sentiment_of_text(" ".join(chunks))

    def _analyze_by_product(self, state: TrendState, snapshot: List[Record], fresh_ids: Set[str]) -> None:
        now = utc_now()
        texts: Dict[str, List[str]] = {}

        for record in snapshot:
            try:
                text = results_text(record)
                seen_in_record: Set[str] = set()
                for product in extract_products(record.results, record.source):
                    product_id = product["id"]
                    if product_id in seen_in_record:
                        continue
                    seen_in_record.add(product_id)
                    texts.setdefault(product_id, []).append(text)

                    profile = state.products.get(product_id)
                    if profile is None:
                        profile = ProductProfile(**product)
                        state.products[product_id] = profile
                    if record.id in fresh_ids:
                        profile.mentions += 1
                        merge_unique(profile.sources, [product["source"]])
                        merge_unique(profile.related_keywords, top_tokens(text))
                        profile.last_updated = now
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping record {record.id} in product pass: {e}")

        for product_id, chunks in texts.items():
            state.products[product_id].sentiment = sentiment_of_text(" ".join(chunks))

    def _analyze_by_timeframe(self, state: TrendState, snapshot: List[Record]) -> None:
        """Bucket record counts and niche matches by day, ISO week and month."""
        rows = []
        for record in snapshot:
            niches = matching_niches([record.query, results_text(record)], self.niches)
            rows.append({"timestamp": record.timestamp, "niches": niches or [None]})

        frame = pd.DataFrame(rows)
        frame["timestamp"] = pd.to_datetime(frame["timestamp"], utc=True, format="ISO8601", errors="coerce")
        frame = frame.dropna(subset=["timestamp"])
        if frame.empty:
            state.timeframes = {bucket: {} for bucket in TIMEFRAMES}
            return

        iso = frame["timestamp"].dt.isocalendar()
        frame["daily"] = frame["timestamp"].dt.strftime("%Y-%m-%d")
        frame["weekly"] = iso["year"].astype(str) + "-W" + iso["week"].astype(str).str.zfill(2)
        frame["monthly"] = frame["timestamp"].dt.strftime("%Y-%m")
        exploded = frame.explode("niches").dropna(subset=["niches"])

        timeframes: Dict[str, Dict[str, Any]] = {}
        for bucket in TIMEFRAMES:
            tree = {key: {"records": int(count), "niches": {}} for key, count in frame.groupby(bucket).size().items()}
            if not exploded.empty:
                for (key, niche), count in exploded.groupby([bucket, "niches"]).size().items():
                    tree[key]["niches"][niche] = int(count)
            timeframes[bucket] = dict(sorted(tree.items()))
        state.timeframes = timeframes

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_niche_trends(self) -> Dict[str, NicheProfile]:
        return dict(self.state.niches)

    def get_keyword_trends(self) -> Dict[str, KeywordProfile]:
        return dict(self.state.keywords)

    def get_product_trends(self) -> Dict[str, ProductProfile]:
        return dict(self.state.products)

    def get_timeframe_trends(self) -> Dict[str, Dict[str, Any]]:
        return dict(self.state.timeframes)

    def get_top_trending_niches(self, n: int = 5) -> List[NicheProfile]:
        return sorted(self.state.niches.values(), key=lambda p: p.popularity, reverse=True)[:n]

    def get_top_trending_keywords(self, n: int = 10) -> List[KeywordProfile]:
        return sorted(self.state.keywords.values(), key=lambda p: p.mentions, reverse=True)[:n]

    def get_top_trending_products(self, n: int = 10) -> List[ProductProfile]:
        return sorted(self.state.products.values(), key=lambda p: p.mentions, reverse=True)[:n]

    def get_trend_predictions(self, top_n: int = 5) -> Dict[str, Any]:
        """Project niche popularity and keyword mentions one period ahead."""
        niches = [profile for profile in self.state.niches.values() if profile.popularity > 0]
        keywords = [profile for profile in self.state.keywords.values() if profile.mentions > 0]
        if not niches and not keywords:
            return {"success": False, "message": "Not enough trend data for predictions"}

        niche_predictions: List[Dict[str, Any]] = []
        if niches:
            frame = pd.DataFrame(
                [{"niche": p.niche, "current_popularity": p.popularity, "growth": p.growth} for p in niches]
            )
            frame["predicted_popularity"] = (frame["current_popularity"] * (1 + frame["growth"] / 100)).round(2)
            frame["predicted_growth"] = frame["growth"]
            frame = frame.sort_values(["predicted_growth", "current_popularity"], ascending=False).head(top_n)
            frame["direction"] = frame["predicted_growth"].map(direction_of)
            niche_predictions = frame.drop(columns=["growth"]).to_dict(orient="records")

        keyword_predictions: List[Dict[str, Any]] = []
        if keywords:
            frame = pd.DataFrame(
                [{"keyword": p.keyword, "current_mentions": p.mentions, "sentiment": p.sentiment} for p in keywords]
            )
            frame["predicted_growth"] = (frame["sentiment"] * 10).round(2)
            frame["predicted_mentions"] = (frame["current_mentions"] * (1 + frame["predicted_growth"] / 100)).round().astype(int)
            frame = frame.sort_values(["predicted_growth", "current_mentions"], ascending=False).head(top_n)
            frame["direction"] = frame["predicted_growth"].map(direction_of)
            keyword_predictions = frame.to_dict(orient="records")

        return {"success": True, "predictions": {"niches": niche_predictions, "keywords": keyword_predictions}}

    def view(self) -> TrendView:
        snapshot = self.state.model_copy(deep=True)
        return TrendView(niches=snapshot.niches, keywords=snapshot.keywords, products=snapshot.products)
