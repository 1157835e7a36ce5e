"""Budget-constrained marketing strategy built from trend and competitor views."""

import asyncio
import copy
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import numpy as np
from pydantic import ValidationError

from .context import ReentrancyGuard
from .models import CompetitorView, GapAnalysis, StrategyOptions, TrendView
from .niches import get_niche_keywords, is_keyword_relevant_to_niche, is_text_relevant_to_niche
from .strategy_tables import (
    AFFILIATE_NETWORKS,
    BUDGET_SCALING_TIERS,
    CONTENT_TEMPLATES,
    DEFAULT_AFFILIATE_NETWORKS,
    DEFAULT_NICHE_ECONOMICS,
    DEFAULT_PLATFORM_FIT,
    HOURS_PER_POST,
    MAX_CONTENT_IDEAS,
    NICHE_ECONOMICS,
    OPPORTUNITY_WEIGHTS,
    PLATFORM_NICHE_FIT,
    PLATFORMS,
    POSTING_DAYS,
    POSTING_FREQUENCY_STEPS,
    TIMELINE_PHASES,
    UNKNOWN_OPPORTUNITY_WEIGHT,
    WEEKLY_ACTIVITY_SPLIT,
    ZERO_INVESTMENT_STRATEGIES,
)

logger = logging.getLogger(__name__)

FACETS = ("content", "platform", "product", "budget", "timeline")

KEY_STRATEGIES = [
    "Focus on content gaps in high-opportunity niches",
    "Lead with the platform that fits each niche best",
    "Promote products with positive sentiment and high commission rates",
    "Reinvest earnings to scale successful strategies",
    "Maintain consistent posting schedule across platforms",
]


def posting_frequency(effectiveness: float) -> int:
    """Posts per week for a platform effectiveness score (0-10)."""
    for minimum, posts in POSTING_FREQUENCY_STEPS:
        if effectiveness >= minimum:
            return posts
    return POSTING_FREQUENCY_STEPS[-1][1]


def spread_days(posts: int) -> List[str]:
    count = min(posts, len(POSTING_DAYS))
    return [POSTING_DAYS[int(i * len(POSTING_DAYS) / count)] for i in range(count)]


class StrategyGenerator:
    """Turns read-only trend and competitor views into five strategy facets.

    Every call rebuilds all facets from scratch; concurrent calls are
    served one at a time.
    """

    def __init__(self, now_provider: Optional[Callable[[], datetime]] = None):
        self._now = now_provider or (lambda: datetime.now(timezone.utc))
        self.strategies: Dict[str, List[Dict[str, Any]]] = {facet: [] for facet in FACETS}
        self.guard = ReentrancyGuard("strategy-generator")

    async def generate_strategy(
        self,
        trends: TrendView,
        competitors: CompetitorView,
        options: Optional[Any] = None,
    ) -> Dict[str, Any]:
        async with self.guard.hold():
            try:
                opts = options if isinstance(options, StrategyOptions) else StrategyOptions.model_validate(options or {})
            except ValidationError as e:
                logger.error(f"Invalid strategy options: {e}")
                return {"success": False, "message": f"Invalid strategy options: {e}"}

            self.strategies = {facet: [] for facet in FACETS}
            gaps = competitors.gap_analysis
            priorities = self.prioritize_niches(trends, gaps, opts.focus_niches)

            try:
                strategies = {"content": self._content_strategy(trends, gaps, priorities, opts)}
                await asyncio.sleep(0)
                strategies["platform"] = self._platform_strategy(priorities, opts)
                await asyncio.sleep(0)
                strategies["product"] = self._product_strategy(trends, priorities, opts)
                await asyncio.sleep(0)
                strategies["budget"] = [self._budget_strategy(priorities, opts)]
                await asyncio.sleep(0)
                strategies["timeline"] = [self._timeline_strategy(opts)]
                summary = self._summary(strategies, priorities, opts)
            except Exception as e:
                logger.error(f"Strategy generation failed: {e}")
                return {"success": False, "message": f"Failed to generate marketing strategy: {e}"}

            self.strategies = strategies
            logger.info(f"Generated strategy for {len(priorities)} niches")
            return {"success": True, "strategies": copy.deepcopy(strategies), "summary": summary}

    # ------------------------------------------------------------------
    # Prioritisation and budget
    # ------------------------------------------------------------------

    @staticmethod
    def prioritize_niches(
        trends: TrendView, gap_analysis: Dict[str, GapAnalysis], focus_niches: List[str]
    ) -> List[Dict[str, Any]]:
        """Priority per focus niche, highest first.

        ``10 + 40 * popularity share of the leader + 20 * clamped growth / 100
        + opportunity weight``, never below 1.
        """
        popularity = {
            niche: trends.niches[niche].popularity if niche in trends.niches else 0 for niche in focus_niches
        }
        max_popularity = max(popularity.values(), default=0)

        prioritized = []
        for niche in focus_niches:
            profile = trends.niches.get(niche)
            growth = profile.growth if profile else 0.0
            gap = gap_analysis.get(niche)
            level = gap.opportunity_level.value if gap else None
            weight = OPPORTUNITY_WEIGHTS.get(level, UNKNOWN_OPPORTUNITY_WEIGHT)

            score = 10.0 + weight + 20.0 * float(np.clip(growth, -100.0, 100.0)) / 100.0
            if max_popularity > 0:
                score += 40.0 * popularity[niche] / max_popularity
            prioritized.append({
                "niche": niche,
                "priority": round(max(1.0, score), 2),
                "popularity": popularity[niche],
                "growth": growth,
                "opportunity_level": level or "unknown",
            })

        return sorted(prioritized, key=lambda entry: entry["priority"], reverse=True)

    @staticmethod
    def allocate_budget(priorities: List[Dict[str, Any]], budget: float) -> Dict[str, float]:
        """Split *budget* by priority, in cents, so the parts add up exactly."""
        if not priorities:
            return {}
        cents = int(round(budget * 100))
        weights = [entry["priority"] for entry in priorities]
        total = sum(weights)
        if total <= 0:
            weights, total = [1.0] * len(priorities), float(len(priorities))

        raw = [weight / total * cents for weight in weights]
        parts = [math.floor(value) for value in raw]
        leftover = cents - sum(parts)
        by_remainder = sorted(range(len(raw)), key=lambda i: raw[i] - parts[i], reverse=True)
        for i in by_remainder[:leftover]:
            parts[i] += 1
        return {entry["niche"]: parts[i] / 100 for i, entry in enumerate(priorities)}

    # ------------------------------------------------------------------
    # Facets
    # ------------------------------------------------------------------

    def _content_strategy(
        self,
        trends: TrendView,
        gap_analysis: Dict[str, GapAnalysis],
        priorities: List[Dict[str, Any]],
        opts: StrategyOptions,
    ) -> List[Dict[str, Any]]:
        total_priority = sum(entry["priority"] for entry in priorities)
        ranked_keywords = sorted(trends.keywords.values(), key=lambda k: k.mentions, reverse=True)

        strategies = []
        for entry in priorities:
            niche = entry["niche"]
            niche_keywords = [k for k in ranked_keywords if is_keyword_relevant_to_niche(k.keyword, niche)]
            gap = gap_analysis.get(niche)
            content_gaps = list(gap.content_gaps) if gap else []

            share = entry["priority"] / total_priority if total_priority else 0.0
            posts = max(1, round(share * opts.weekly_hours / HOURS_PER_POST))
            strategies.append({
                "niche": niche,
                "priority": entry["priority"],
                "content_ideas": self._content_ideas(niche, [k.keyword for k in niche_keywords], content_gaps, opts),
                "keyword_strategy": {
                    "primary_keywords": [k.keyword for k in niche_keywords[:5]] or get_niche_keywords(niche)[:3],
                    "long_tail_keywords": list(dict.fromkeys(
                        related for k in niche_keywords[:5] for related in k.related_keywords
                    ))[:10],
                    "gap_keywords": content_gaps[:5],
                },
                "content_gaps": content_gaps,
                "content_schedule": {
                    "posts_per_week": posts,
                    "posting_days": spread_days(posts),
                    "content_mix": self._content_mix(posts, opts.content_types),
                },
            })
        return strategies

    @staticmethod
    def _content_ideas(niche: str, keywords: List[str], gaps: List[str], opts: StrategyOptions) -> List[Dict[str, Any]]:
        seeds = [(gap, True) for gap in gaps[:3]]
        seeds += [(keyword, False) for keyword in (keywords[:5] or get_niche_keywords(niche)[:3])]

        ideas: List[Dict[str, Any]] = []
        seen = set()
        for keyword, fills_gap in seeds:
            if keyword in seen:
                continue
            # one idea per content type, rotating through that type's templates
            for content_type in opts.content_types:
                if len(ideas) >= MAX_CONTENT_IDEAS:
                    return ideas
                templates = CONTENT_TEMPLATES.get(content_type)
                if templates:
                    title = templates[len(seen) % len(templates)].format(keyword=keyword)
                else:
                    title = f"{keyword}: a {content_type} deep dive"
                ideas.append({
                    "title": title,
                    "content_type": content_type,
                    "keyword": keyword,
                    "fills_gap": fills_gap,
                })
            seen.add(keyword)
        return ideas

    @staticmethod
    def _content_mix(posts: int, content_types: List[str]) -> Dict[str, int]:
        if not content_types:
            return {}
        base, extra = divmod(posts, len(content_types))
        return {content_type: base + (1 if i < extra else 0) for i, content_type in enumerate(content_types)}

    def _platform_strategy(self, priorities: List[Dict[str, Any]], opts: StrategyOptions) -> List[Dict[str, Any]]:
        strategies = []
        for entry in priorities:
            niche = entry["niche"]
            platforms = []
            for platform in opts.platforms:
                info = PLATFORMS.get(platform)
                if info is None:
                    logger.debug(f"Skipping unknown platform '{platform}'")
                    continue
                effectiveness = PLATFORM_NICHE_FIT.get(platform, {}).get(niche, DEFAULT_PLATFORM_FIT)
                platforms.append({
                    "platform": platform,
                    "name": info["name"],
                    "effectiveness": effectiveness,
                    "content_types": list(info["content_types"]),
                    "posting_frequency": posting_frequency(effectiveness),
                    "best_practices": list(info["best_practices"]),
                })
            platforms.sort(key=lambda p: p["effectiveness"], reverse=True)

            cross_platform = []
            if len(platforms) > 1:
                others = ", ".join(p["name"] for p in platforms[1:])
                cross_platform = [
                    f"Create for {platforms[0]['name']} first, then adapt each piece for {others}",
                    "Link every secondary profile back to the primary one",
                ]
            strategies.append({
                "niche": niche,
                "platforms": platforms,
                "primary_platform": platforms[0]["platform"] if platforms else None,
                "cross_platform_strategy": cross_platform,
            })
        return strategies

    def _product_strategy(self, trends: TrendView, priorities: List[Dict[str, Any]], opts: StrategyOptions) -> List[Dict[str, Any]]:
        strategies = []
        for entry in priorities:
            niche = entry["niche"]
            products = [
                product
                for product in trends.products.values()
                if is_text_relevant_to_niche(f"{product.title} {product.description}", niche)
            ]
            products.sort(key=lambda p: (p.sentiment, p.mentions), reverse=True)

            if products:
                promotion = [
                    f"Write an honest review of {products[0].title}",
                    "Compare the top products side by side",
                    "Feature products with positive sentiment in tutorials",
                ]
            else:
                promotion = ["Collect product data for this niche before promoting anything"]

            strategies.append({
                "niche": niche,
                "recommended_products": [product.model_dump(mode="json") for product in products[:5]],
                "promotion_strategy": promotion,
                "affiliate_networks": copy.deepcopy(AFFILIATE_NETWORKS.get(niche, DEFAULT_AFFILIATE_NETWORKS)),
                "commission_strategy": self._commission_strategy(niche, opts.goal_income, len(priorities)),
            })
        return strategies

    @staticmethod
    def _commission_strategy(niche: str, goal_income: float, niche_count: int) -> Dict[str, Any]:
        economics = NICHE_ECONOMICS.get(niche, DEFAULT_NICHE_ECONOMICS)
        monthly_target = goal_income / max(1, niche_count)
        per_sale = economics["average_order_value"] * economics["commission_rate"]
        sales_needed = math.ceil(monthly_target / per_sale) if per_sale > 0 else 0
        return {
            "monthly_target": round(monthly_target, 2),
            "average_order_value": economics["average_order_value"],
            "commission_rate": economics["commission_rate"],
            "commission_per_sale": round(per_sale, 2),
            "sales_needed_per_month": sales_needed,
            "daily_sales_needed": round(sales_needed / 30, 1),
        }

    def _budget_strategy(self, priorities: List[Dict[str, Any]], opts: StrategyOptions) -> Dict[str, Any]:
        allocation = self.allocate_budget(priorities, opts.budget)
        return {
            "initial_budget": opts.budget,
            "allocation": allocation,
            "scaling_strategy": [
                {
                    "monthly_income": round(tier["monthly_income"] * opts.goal_income, 2),
                    "reinvest_share": tier["reinvest_share"],
                    "focus": tier["focus"],
                }
                for tier in BUDGET_SCALING_TIERS
            ],
            "investment_priorities": [
                {"niche": entry["niche"], "priority": entry["priority"], "allocation": allocation.get(entry["niche"], 0.0)}
                for entry in priorities
            ],
            "zero_investment_strategies": list(ZERO_INVESTMENT_STRATEGIES),
        }

    def _timeline_strategy(self, opts: StrategyOptions) -> Dict[str, Any]:
        """Fixed phases from now, with income interpolated between phase anchors."""
        start = self._now()
        offset = 0
        anchor_days, anchor_shares = [0], [0.0]
        phases = []
        for phase in TIMELINE_PHASES:
            phase_start = start + timedelta(days=offset)
            offset += phase["duration"]
            phase_end = start + timedelta(days=offset)
            anchor_days.append(offset)
            anchor_shares.append(phase["income_share"])
            phases.append({
                "name": phase["name"],
                "duration": phase["duration"],
                "tasks": list(phase["tasks"]),
                "start_date": phase_start.date().isoformat(),
                "end_date": phase_end.date().isoformat(),
                "milestones": [
                    f"Start {phase['name']}",
                    f"Complete {phase['name']}",
                ],
                "projected_monthly_income": round(phase["income_share"] * opts.goal_income, 2),
            })

        days = list(range(0, offset, 7)) + [offset]
        incomes = np.interp(days, anchor_days, anchor_shares) * opts.goal_income
        projections = [
            {
                "week": week,
                "day": day,
                "date": (start + timedelta(days=day)).date().isoformat(),
                "projected_income": round(float(income), 2),
            }
            for week, (day, income) in enumerate(zip(days, incomes))
        ]

        first_income_day = next(
            (anchor_days[i - 1] for i in range(1, len(anchor_days)) if anchor_shares[i] > 0), offset
        )
        goal_day = next((day for day, share in zip(anchor_days, anchor_shares) if share >= 1.0), offset)

        return {
            "phases": phases,
            "total_duration": offset,
            "income_projections": projections,
            "key_milestones": [
                {"day": day, "date": phase["end_date"], "milestone": f"{phase['name']} complete"}
                for day, phase in zip(anchor_days[1:], phases)
            ],
            "weekly_schedule": {
                "total_hours": opts.weekly_hours,
                **{activity: round(opts.weekly_hours * share, 2) for activity, share in WEEKLY_ACTIVITY_SPLIT.items()},
            },
            "days_to_first_income": first_income_day,
            "days_to_goal": goal_day,
            "projected_income_at_timeframe": round(
                float(np.interp(opts.timeframe, anchor_days, anchor_shares) * opts.goal_income), 2
            ),
        }

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    @staticmethod
    def _summary(strategies: Dict[str, List[Dict[str, Any]]], priorities: List[Dict[str, Any]], opts: StrategyOptions) -> Dict[str, Any]:
        ranked_platforms = sorted(
            (platform for entry in strategies["platform"] for platform in entry["platforms"]),
            key=lambda p: p["effectiveness"],
            reverse=True,
        )
        top_platforms = list(dict.fromkeys(platform["platform"] for platform in ranked_platforms))[:2]
        top_products = list(dict.fromkeys(
            product["title"] for entry in strategies["product"] for product in entry["recommended_products"]
        ))[:3]
        timeline = strategies["timeline"][0]

        return {
            "focus_niches": [entry["niche"] for entry in priorities[:3]],
            "primary_platforms": top_platforms,
            "top_products": top_products,
            "initial_investment": opts.budget,
            "estimated_days_to_first_income": timeline["days_to_first_income"],
            "estimated_days_to_goal": timeline["days_to_goal"],
            "projected_income_at_timeframe": timeline["projected_income_at_timeframe"],
            "timeframe_days": opts.timeframe,
            "key_strategies": list(KEY_STRATEGIES),
        }
