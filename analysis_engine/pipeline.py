"""Single entry point wiring the context, both engines and the strategy generator."""

import logging
from typing import Any, Dict, Iterable, Optional

from .competitor_engine import CompetitorEngine
from .config import EngineSettings
from .context import AnalysisContext, run_with_timeout
from .errors import CompetitorNotFoundError
from .strategy_generator import StrategyGenerator
from .trend_engine import TrendEngine

logger = logging.getLogger(__name__)


class AnalysisPipeline:
    """Runs trend analysis, competitor analysis and strategy generation for one session."""

    def __init__(self, context: AnalysisContext, generator: Optional[StrategyGenerator] = None):
        self.context = context
        self.trends = TrendEngine(context)
        self.competitors = CompetitorEngine(context)
        self.generator = generator or StrategyGenerator()

    @classmethod
    def from_settings(cls, settings: Optional[EngineSettings] = None) -> "AnalysisPipeline":
        pipeline = cls(AnalysisContext.from_settings(settings))
        pipeline.load()
        return pipeline

    @property
    def timeout(self) -> Optional[float]:
        return self.context.settings.analysis_timeout

    def load(self) -> Dict[str, bool]:
        return {"trends": self.trends.load(), "competitors": self.competitors.load()}

    def save(self) -> Dict[str, bool]:
        return {"trends": self.trends.save(), "competitors": self.competitors.save()}

    async def analyze(self, records: Optional[Iterable[Any]] = None) -> Dict[str, Any]:
        """Trend pass then competitor pass over the same snapshot."""
        snapshot = list(records) if records is not None else self.context.record_store.search()
        trend_result = await run_with_timeout(self.trends.analyze_all(snapshot), self.timeout, "trend analysis")
        competitor_result = await run_with_timeout(
            self.competitors.analyze_all_data(snapshot), self.timeout, "competitor analysis"
        )
        return {
            "success": trend_result["success"] and competitor_result["success"],
            "trends": trend_result,
            "competitors": competitor_result,
        }

    async def generate_strategy(self, options: Optional[Any] = None) -> Dict[str, Any]:
        return await run_with_timeout(
            self.generator.generate_strategy(self.trends.view(), self.competitors.view(), options),
            self.timeout,
            "strategy generation",
        )

    async def run(self, records: Optional[Iterable[Any]] = None, options: Optional[Any] = None) -> Dict[str, Any]:
        """Analyze, then generate a strategy; stops at the first failed stage."""
        analysis = await self.analyze(records)
        if not analysis["success"]:
            return {"success": False, "message": "Analysis failed", "analysis": analysis}
        strategy = await self.generate_strategy(options)
        return {
            "success": strategy["success"],
            "analysis": analysis,
            "strategy": strategy,
            "predictions": self.trends.get_trend_predictions(),
        }

    # ------------------------------------------------------------------
    # Competitor mutations
    # ------------------------------------------------------------------

    async def add_competitor(self, data: Dict[str, Any]) -> Dict[str, Any]:
        async with self.competitors.guard.hold():
            try:
                profile = self.competitors.add_competitor(data)
            except ValueError as e:
                return {"success": False, "message": str(e)}
            self.competitors.save()
        return {"success": True, "competitor": profile.model_dump(mode="json")}

    async def update_competitor(self, competitor_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        async with self.competitors.guard.hold():
            try:
                profile = self.competitors.update_competitor(competitor_id, updates)
            except (CompetitorNotFoundError, ValueError) as e:
                logger.warning(str(e))
                return {"success": False, "message": str(e)}
            self.competitors.save()
        return {"success": True, "competitor": profile.model_dump(mode="json")}

    async def remove_competitor(self, competitor_id: str) -> Dict[str, Any]:
        async with self.competitors.guard.hold():
            try:
                self.competitors.remove_competitor(competitor_id)
            except CompetitorNotFoundError as e:
                logger.warning(str(e))
                return {"success": False, "message": str(e)}
            self.competitors.save()
        return {"success": True, "message": f"Competitor {competitor_id} removed"}
