import asyncio

import pytest

from conftest import make_record, pinterest_payload, tiktok_payload, twitter_payload

from analysis_engine.competitor_engine import CompetitorEngine, competitor_id_for, opportunity_for
from analysis_engine.errors import AnalysisError, CompetitorNotFoundError, DuplicateCompetitorError
from analysis_engine.models import OpportunityLevel
from analysis_engine.niches import UNCLASSIFIED_NICHE

AI = "AI & Automation Tools"
DIY = "DIY & Home Improvement"
FINANCE = "Personal Finance & Making Money Online"


def test_empty_input_is_a_failed_result(context) -> None:
    result = asyncio.run(CompetitorEngine(context).analyze_all_data([]))
    assert result == {"success": False, "message": "No data available for analysis"}


def test_twitter_user_above_threshold_becomes_competitor(context, twitter_record) -> None:
    engine = CompetitorEngine(context)
    result = asyncio.run(engine.analyze_all_data([twitter_record]))

    assert result["success"] is True
    competitors = engine.get_competitors_by_platform("twitter")
    assert len(competitors) == 1
    profile = competitors[0]
    assert profile.niche == AI
    assert profile.platform_id == "u1"
    assert profile.id == competitor_id_for(("twitter", "id", "u1"))
    assert profile.metrics["followers"] == 5000
    assert profile.metrics["engagement"] == 160
    assert [item.type for item in profile.content] == ["tweet"]
    assert engine.get_competitors_by_niche(AI) == [profile]


def test_below_threshold_users_are_ignored(context) -> None:
    engine = CompetitorEngine(context)
    record = make_record("socialMedia", "twitter", twitter_payload(followers=999))
    asyncio.run(engine.analyze_all_data([record]))
    assert engine.get_all_competitors() == []


def test_same_record_twice_keeps_one_profile(context, twitter_record) -> None:
    engine = CompetitorEngine(context)
    asyncio.run(engine.analyze_all_data([twitter_record]))
    asyncio.run(engine.analyze_all_data([twitter_record]))

    assert len(engine.get_all_competitors()) == 1
    assert len(engine.get_all_competitors()[0].content) == 1


def test_new_content_updates_existing_profile(context) -> None:
    engine = CompetitorEngine(context)
    first = make_record("socialMedia", "twitter", twitter_payload(followers=5000, tweet_id="t1"))
    second = make_record(
        "socialMedia", "twitter", twitter_payload(followers=6500, tweet_id="t2"), "2025-03-05T10:00:00+00:00"
    )
    asyncio.run(engine.analyze_all_data([first, second]))

    profile = engine.get_all_competitors()[0]
    assert len(engine.get_all_competitors()) == 1
    assert profile.metrics["followers"] == 6500
    assert [item.id for item in profile.content] == ["t1", "t2"]


def test_pinterest_and_tiktok_extraction(context, social_records) -> None:
    engine = CompetitorEngine(context)
    asyncio.run(engine.analyze_all_data(social_records))

    pin_creator = engine.get_competitors_by_platform("pinterest")[0]
    assert pin_creator.name == "Unknown Creator"
    assert pin_creator.niche == DIY
    assert pin_creator.metrics == {"pins": 1, "saves": 250, "comments": 12}

    tiktoker = engine.get_competitors_by_platform("tiktok")[0]
    assert tiktoker.niche == FINANCE
    assert tiktoker.url == "https://tiktok.com/@moneycoach"
    assert tiktoker.metrics["engagement"] == 4350
    assert tiktoker.metrics["videos"] == 1


def test_pinterest_below_saves_threshold_is_ignored(context) -> None:
    engine = CompetitorEngine(context)
    asyncio.run(engine.analyze_all_data([make_record("socialMedia", "pinterest", pinterest_payload(saves=99))]))
    asyncio.run(engine.analyze_all_data([make_record("socialMedia", "tiktok", tiktok_payload(followers=4999))]))
    assert engine.get_all_competitors() == []


def test_generic_sources_need_two_mentions(context) -> None:
    payload = {
        "query": "note apps",
        "results": [
            {"text": "Notion vs obsidianpro for students"},
            {"text": "Why I picked obsidianpro over everything, an alternative to evernote"},
            {"text": "obsidianpro vs nothing; I also tried vs obsidianpro again"},
        ],
    }
    engine = CompetitorEngine(context)
    asyncio.run(engine.analyze_all_data([make_record("socialMedia", "reddit", payload)]))

    names = [profile.name for profile in engine.get_all_competitors()]
    assert names == ["obsidianpro"]
    assert engine.get_all_competitors()[0].platform == "reddit"


def test_non_social_records_are_not_inspected(context) -> None:
    record = make_record("affiliateNetworks", "amazon", twitter_payload())
    engine = CompetitorEngine(context)
    asyncio.run(engine.analyze_all_data([record]))
    assert engine.get_all_competitors() == []


def test_malformed_items_are_skipped(context) -> None:
    payload = twitter_payload()
    payload["results"].insert(0, {"user": "not-a-dict"})
    payload["results"].insert(0, {"user": {"followers_count": 5000, "name": "x"}, "metrics": "broken"})
    engine = CompetitorEngine(context)
    result = asyncio.run(engine.analyze_all_data([make_record("socialMedia", "twitter", payload)]))

    assert result["success"] is True
    assert any(profile.platform_id == "u1" for profile in engine.get_all_competitors())


def test_performance_scores_and_ranks(context, social_records) -> None:
    engine = CompetitorEngine(context)
    asyncio.run(engine.analyze_all_data(social_records))

    scores = sorted(engine.state.performance.values(), key=lambda s: s.rank)
    assert [s.rank for s in scores] == [1, 2, 3]
    assert all(0 <= s.score <= 100 for s in scores)
    assert scores[0].score >= scores[1].score >= scores[2].score
    # the TikTok creator has the largest audience
    tiktoker = engine.get_competitors_by_platform("tiktok")[0]
    assert engine.state.performance[tiktoker.id].audience == 12000


def test_strategy_content_and_niche_analysis(context, social_records) -> None:
    engine = CompetitorEngine(context)
    asyncio.run(engine.analyze_all_data(social_records))

    twitter_profile = engine.get_competitors_by_platform("twitter")[0]
    strategy = engine.state.strategies[twitter_profile.id]
    assert strategy["content_mix"] == {"tweet": 1}
    assert strategy["primary_content_type"] == "tweet"

    assert engine.state.content[AI]["total_items"] == 1
    assert engine.state.content[AI]["top_content"][0]["engagement"] == 160
    assert engine.state.niches[DIY]["competitor_count"] == 1
    assert engine.state.niches[DIY]["platforms"] == ["pinterest"]


def test_opportunity_level_is_monotonic() -> None:
    levels = [opportunity_for(count) for count in range(0, 15)]
    order = {OpportunityLevel.HIGH: 0, OpportunityLevel.MEDIUM: 1, OpportunityLevel.LOW: 2}
    assert levels[0] == OpportunityLevel.HIGH
    assert levels[3] == OpportunityLevel.MEDIUM
    assert levels[10] == OpportunityLevel.MEDIUM
    assert levels[11] == OpportunityLevel.LOW
    assert [order[level] for level in levels] == sorted(order[level] for level in levels)


def test_gap_analysis_levels_and_gaps(context) -> None:
    engine = CompetitorEngine(context)
    gaps = engine.get_competitive_gap_analysis()
    assert set(gaps) == set(engine.niches)
    assert gaps[AI].opportunity_level == OpportunityLevel.HIGH
    assert "chatbot" in gaps[AI].content_gaps

    for i in range(11):
        engine.add_competitor({
            "name": f"creator{i}",
            "platform": "tiktok",
            "niche": AI,
            "content": [{"type": "video", "id": f"v{i}", "description": "my favourite chatbot workflow"}],
        })

    gaps = engine.get_competitive_gap_analysis()[AI]
    assert gaps.competitor_count == 11
    assert gaps.opportunity_level == OpportunityLevel.LOW
    assert "chatbot" not in gaps.content_gaps
    assert "workflow" not in gaps.content_gaps
    assert "data analysis" in gaps.content_gaps
    assert ", ".join(gaps.content_gaps[:3]) in gaps.recommendation


def test_add_competitor_merges_known_identity(context) -> None:
    engine = CompetitorEngine(context)
    first = engine.add_competitor({"name": "Prep Pro", "platform": "twitter", "platformId": "42", "description": "survival gear"})
    again = engine.add_competitor({"name": "Prep Pro Renamed", "platform": "twitter", "platform_id": "42", "metrics": {"followers": 10}})

    assert first.id == again.id
    assert len(engine.get_all_competitors()) == 1
    assert again.niche == "Survival & Emergency Preparedness"
    assert again.metrics["followers"] == 10


def test_add_competitor_without_niche_text_is_unclassified(context) -> None:
    engine = CompetitorEngine(context)
    profile = engine.add_competitor({"name": "zzz", "platform": "pinterest"})
    assert profile.niche == UNCLASSIFIED_NICHE
    assert UNCLASSIFIED_NICHE not in engine.get_competitive_gap_analysis()
    assert engine.get_unclassified_competitors() == [profile]


def test_add_competitor_requires_name_and_platform(context) -> None:
    with pytest.raises(ValueError):
        CompetitorEngine(context).add_competitor({"name": "nobody"})


def test_update_and_remove(context) -> None:
    engine = CompetitorEngine(context)
    profile = engine.add_competitor({"name": "Handy", "platform": "tiktok", "niche": DIY})

    updated = engine.update_competitor(profile.id, {"metrics": {"followers": "12,000"}, "description": "power tools"})
    assert updated.metrics["followers"] == 12000.0
    assert updated.description == "power tools"

    assert engine.remove_competitor(profile.id) is True
    assert engine.get_competitor(profile.id) is None
    assert profile.id not in engine.state.performance


def test_unknown_ids_raise_not_found(context) -> None:
    engine = CompetitorEngine(context)
    with pytest.raises(CompetitorNotFoundError) as excinfo:
        engine.update_competitor("competitor_missing", {"name": "x"})
    assert "competitor_missing" in str(excinfo.value)
    with pytest.raises(CompetitorNotFoundError):
        engine.remove_competitor("competitor_missing")


def test_save_and_load_rebuilds_identity_index(context, twitter_record) -> None:
    engine = CompetitorEngine(context)
    asyncio.run(engine.analyze_all_data([twitter_record]))

    restored = CompetitorEngine(context)
    assert restored.load() is True
    asyncio.run(restored.analyze_all_data([twitter_record]))
    assert len(restored.get_all_competitors()) == 1
    assert len(restored.get_all_competitors()[0].content) == 1


def test_view_carries_gap_analysis(context, social_records) -> None:
    engine = CompetitorEngine(context)
    asyncio.run(engine.analyze_all_data(social_records))
    view = engine.view()
    assert len(view.competitors) == 3
    assert set(view.gap_analysis) == set(engine.niches)
    assert set(view.performance) == {profile.id for profile in view.competitors}


def test_failed_update_leaves_profile_untouched(context) -> None:
    engine = CompetitorEngine(context)
    profile = engine.add_competitor({"name": "Handy", "platform": "tiktok", "niche": DIY})

    with pytest.raises(ValueError):
        engine.update_competitor(profile.id, {"name": "Renamed", "content": [{"no_type": 1}]})
    with pytest.raises(ValueError):
        engine.update_competitor(profile.id, {"description": "changed", "metrics": [1, 2]})

    stored = engine.get_competitor(profile.id)
    assert stored.name == "Handy"
    assert stored.description == ""
    assert stored.content == []


def test_malformed_metrics_or_content_are_rejected(context) -> None:
    engine = CompetitorEngine(context)
    with pytest.raises(ValueError):
        engine.add_competitor({"name": "X", "platform": "twitter", "metrics": [1, 2]})
    with pytest.raises(ValueError):
        engine.add_competitor({"name": "X", "platform": "twitter", "content": "not a list"})
    assert engine.get_all_competitors() == []


def test_update_cannot_take_another_profiles_identity(context) -> None:
    engine = CompetitorEngine(context)
    first = engine.add_competitor({"name": "Alpha", "platform": "twitter", "platformId": "1"})
    second = engine.add_competitor({"name": "Beta", "platform": "twitter", "platformId": "2"})

    with pytest.raises(DuplicateCompetitorError) as excinfo:
        engine.update_competitor(first.id, {"platform_id": "2", "metrics": {"followers": 9}})
    assert isinstance(excinfo.value, AnalysisError)
    assert excinfo.value.owner_id == second.id
    assert engine.get_competitor(first.id).platform_id == "1"

    merged = engine.add_competitor({"name": "Beta", "platform": "twitter", "platformId": "2", "metrics": {"followers": 50}})
    assert merged.id == second.id
    assert "followers" not in engine.get_competitor(first.id).metrics
    assert len(engine.get_all_competitors()) == 2
