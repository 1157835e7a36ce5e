"""Kache Analysis Engine.

Turns stored social-platform, affiliate-network and website records into trend
statistics, competitive-gap analysis and a budget-constrained marketing strategy.
"""

__all__ = [
    "AnalysisContext",
    "AnalysisPipeline",
    "CompetitorEngine",
    "RecordStore",
    "StrategyGenerator",
    "StrategyOptions",
    "TrendEngine",
]

__version__ = "0.1.0"

from .context import AnalysisContext
from .competitor_engine import CompetitorEngine
from .models import StrategyOptions
from .pipeline import AnalysisPipeline
from .record_store import RecordStore
from .strategy_generator import StrategyGenerator
from .trend_engine import TrendEngine
