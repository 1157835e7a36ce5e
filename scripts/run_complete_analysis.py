#!/usr/bin/env python3

"""
Complete analysis pipeline: loads stored records, runs trend and competitor
analysis, generates a marketing strategy and writes JSON + CSV reports.

Usage
-----
python scripts/run_complete_analysis.py --records data/records.json
python scripts/run_complete_analysis.py --budget 50 --goal-income 5000 --platforms pinterest tiktok
"""

import argparse
import asyncio
import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from analysis_engine.config import EngineSettings
from analysis_engine.context import AnalysisContext
from analysis_engine.pipeline import AnalysisPipeline
from analysis_engine.record_store import RecordStore
from analysis_engine.state_store import StateStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run trend, competitor and strategy analysis over stored records")
    parser.add_argument("--records", type=Path, help="Records JSON file (default: KACHE_RECORDS_PATH or data/records.json)")
    parser.add_argument("--state-dir", type=Path, help="Directory for persisted engine state")
    parser.add_argument("--output-dir", type=Path, default=Path("data") / "reports", help="Where reports are written")
    parser.add_argument("--budget", type=float, help="Initial budget in dollars")
    parser.add_argument("--timeframe", type=int, help="Planning horizon in days")
    parser.add_argument("--goal-income", type=float, help="Monthly income goal in dollars")
    parser.add_argument("--weekly-hours", type=float, help="Hours available per week")
    parser.add_argument("--platforms", nargs="+", help="Platforms to plan for")
    parser.add_argument("--niches", nargs="+", help="Niches to focus on")
    parser.add_argument("--content-types", nargs="+", help="Content types to produce")
    return parser


def build_options(args: argparse.Namespace) -> Dict[str, Any]:
    """Only options given on the command line; the rest keep their defaults."""
    candidates = {
        "budget": args.budget,
        "timeframe": args.timeframe,
        "goal_income": args.goal_income,
        "weekly_hours": args.weekly_hours,
        "platforms": args.platforms,
        "focus_niches": args.niches,
        "content_types": args.content_types,
    }
    return {key: value for key, value in candidates.items() if value is not None}


def export_reports(pipeline: AnalysisPipeline, result: Dict[str, Any], output_dir: Path) -> List[Path]:
    """Write the strategy JSON and the niche / competitor CSV reports."""
    output_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    written = []

    strategy_path = output_dir / f"strategy_{stamp}.json"
    with open(strategy_path, "w", encoding="utf-8") as f:
        json.dump(result["strategy"], f, indent=2, ensure_ascii=False, default=str)
    written.append(strategy_path)

    niches_df = pd.DataFrame(
        [
            {
                "niche": profile.niche,
                "popularity": profile.popularity,
                "growth": profile.growth,
                "keywords": ", ".join(profile.keywords[:10]),
                "products": len(profile.products),
            }
            for profile in pipeline.trends.get_top_trending_niches(n=len(pipeline.trends.niches))
        ]
    )
    niches_path = output_dir / f"niche_trends_{stamp}.csv"
    niches_df.to_csv(niches_path, index=False)
    written.append(niches_path)

    performance = pipeline.competitors.state.performance
    competitors_df = pd.DataFrame(
        [
            {
                "id": profile.id,
                "name": profile.name,
                "platform": profile.platform,
                "niche": profile.niche,
                "score": performance[profile.id].score if profile.id in performance else None,
                "rank": performance[profile.id].rank if profile.id in performance else None,
                "content_items": len(profile.content),
            }
            for profile in pipeline.competitors.get_all_competitors()
        ],
        columns=["id", "name", "platform", "niche", "score", "rank", "content_items"],
    )
    competitors_path = output_dir / f"competitors_{stamp}.csv"
    competitors_df.sort_values("rank").to_csv(competitors_path, index=False)
    written.append(competitors_path)

    return written


def print_summary(summary: Dict[str, Any]) -> None:
    print("\n📋 Strategy summary")
    print("=" * 60)
    print(f"🎯 Focus niches:      {', '.join(summary['focus_niches']) or '-'}")
    print(f"📱 Primary platforms: {', '.join(summary['primary_platforms']) or '-'}")
    print(f"🛒 Top products:      {', '.join(summary['top_products']) or '-'}")
    print(f"💵 Initial budget:    ${summary['initial_investment']:.2f}")
    print(f"⏱️  First income in ~{summary['estimated_days_to_first_income']} days, goal in ~{summary['estimated_days_to_goal']} days")
    print(f"📈 Projected income at day {summary['timeframe_days']}: ${summary['projected_income_at_timeframe']:.2f}")


def main(argv: Optional[List[str]] = None) -> int:
    """Entry-point for the complete analysis pipeline."""
    args = build_parser().parse_args(argv)
    settings = EngineSettings.from_env()
    if args.records:
        settings.records_path = args.records
    if args.state_dir:
        settings.state_dir = args.state_dir

    logging.basicConfig(level=settings.log_level, format="%(asctime)s | %(levelname)s | %(message)s")
    start_time = time.time()

    record_store = RecordStore(settings.records_path)
    loaded = record_store.load()
    logger.info(f"📂 Loaded {loaded} records from {settings.records_path}")

    context = AnalysisContext(record_store=record_store, state_store=StateStore(settings.state_dir), settings=settings)
    pipeline = AnalysisPipeline(context)
    pipeline.load()

    logger.info("🚀 Running trend + competitor analysis...")
    result = asyncio.run(pipeline.run(options=build_options(args)))
    if not result["success"]:
        logger.error(f"❌ Pipeline failed: {result.get('message') or result.get('strategy', {}).get('message')}")
        return 1

    for path in export_reports(pipeline, result, args.output_dir):
        logger.info(f"💾 Wrote {path}")

    print_summary(result["strategy"]["summary"])
    logger.info(f"🎉 Complete analysis finished in {time.time() - start_time:.1f}s")
    return 0


if __name__ == "__main__":
    sys.exit(main())
