"""Shared pytest fixtures: record builders and an isolated analysis context."""

from pathlib import Path
from typing import Any, Dict

import pytest

from analysis_engine.config import EngineSettings
from analysis_engine.context import AnalysisContext
from analysis_engine.models import Record
from analysis_engine.record_store import RecordStore
from analysis_engine.state_store import StateStore


def make_record(category: str, source: str, payload: Dict[str, Any], timestamp: str = "2025-03-03T10:00:00+00:00") -> Record:
    return Record(
        id=f"{category}_{source}_{timestamp}",
        category=category,
        source=source,
        timestamp=timestamp,
        payload=payload,
    )


def twitter_payload(followers: int = 5000, tweet_id: str = "t1", text: str = "My new AI assistant automates my inbox") -> Dict[str, Any]:
    return {
        "query": "ai assistant",
        "results": [
            {
                "id": tweet_id,
                "text": text,
                "user": {"id": "u1", "username": "botmaker", "name": "Bot Maker", "followers_count": followers},
                "metrics": {"likes": 120, "retweets": 30, "replies": 10},
            }
        ],
    }


def pinterest_payload(saves: int = 250) -> Dict[str, Any]:
    return {
        "query": "diy shelves",
        "results": [
            {
                "id": "p1",
                "title": "DIY floating shelves",
                "description": "Easy weekend woodworking project",
                "link": "https://pin.example/p1",
                "image": "https://img.example/p1.jpg",
                "metrics": {"saves": saves, "comments": 12},
            }
        ],
    }


def tiktok_payload(followers: int = 12000) -> Dict[str, Any]:
    return {
        "query": "budget tips",
        "results": [
            {
                "id": "v1",
                "description": "How I cleared my debt on a tight budget",
                "author": {"id": "a1", "username": "moneycoach", "followers": followers},
                "metrics": {"views": 50000, "likes": 4000, "comments": 200, "shares": 150},
            }
        ],
    }


@pytest.fixture
def twitter_record() -> Record:
    return make_record("socialMedia", "twitter", twitter_payload())


@pytest.fixture
def social_records() -> list:
    return [
        make_record("socialMedia", "twitter", twitter_payload(), "2025-03-03T10:00:00+00:00"),
        make_record("socialMedia", "pinterest", pinterest_payload(), "2025-03-04T10:00:00+00:00"),
        make_record("socialMedia", "tiktok", tiktok_payload(), "2025-03-11T10:00:00+00:00"),
    ]


@pytest.fixture
def context(tmp_path: Path) -> AnalysisContext:
    settings = EngineSettings(state_dir=tmp_path / "state", records_path=tmp_path / "records.json")
    return AnalysisContext(
        record_store=RecordStore(settings.records_path),
        state_store=StateStore(settings.state_dir),
        settings=settings,
    )
