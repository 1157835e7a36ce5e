import asyncio

from conftest import make_record, pinterest_payload, twitter_payload

from analysis_engine.trend_engine import TrendEngine, compute_growth

AI = "AI & Automation Tools"
DIY = "DIY & Home Improvement"


def test_empty_input_is_a_failed_result(context) -> None:
    engine = TrendEngine(context)
    result = asyncio.run(engine.analyze_all([]))
    assert result["success"] is False
    assert "No data" in result["message"]


def test_empty_engine_accessors_do_not_raise(context) -> None:
    engine = TrendEngine(context)
    assert engine.get_top_trending_keywords() == []
    assert engine.get_top_trending_products() == []
    assert all(p.popularity == 0 for p in engine.get_top_trending_niches())
    assert engine.get_trend_predictions()["success"] is False


def test_single_twitter_record_hits_only_ai_niche(context, twitter_record) -> None:
    engine = TrendEngine(context)
    result = asyncio.run(engine.analyze_all([twitter_record]))

    assert result["success"] is True
    assert engine.state.niches[AI].popularity == 1
    assert sum(p.popularity for p in engine.state.niches.values()) == 1
    assert "assistant" in engine.state.niches[AI].keywords

    keyword = engine.state.keywords["ai assistant"]
    assert keyword.mentions == 1
    assert keyword.sources == ["twitter"]
    assert "ai assistant" not in keyword.related_keywords


def test_records_default_to_the_record_store(context) -> None:
    context.record_store.store("socialMedia", "twitter", twitter_payload())
    engine = TrendEngine(context)
    assert asyncio.run(engine.analyze_all())["success"] is True
    assert engine.state.niches[AI].popularity == 1


def test_rerun_over_same_snapshot_is_idempotent(context, social_records) -> None:
    engine = TrendEngine(context)
    asyncio.run(engine.analyze_all(social_records))
    before = engine.state.model_dump(exclude={"niches"})
    popularity = {n: p.popularity for n, p in engine.state.niches.items()}

    asyncio.run(engine.analyze_all(social_records))

    after = engine.state.model_dump(exclude={"niches"})
    for keyword, profile in before["keywords"].items():
        assert after["keywords"][keyword]["mentions"] == profile["mentions"]
        assert after["keywords"][keyword]["sentiment"] == profile["sentiment"]
        assert after["keywords"][keyword]["related_keywords"] == profile["related_keywords"]
    assert {n: p.popularity for n, p in engine.state.niches.items()} == popularity


def test_save_load_round_trip_keeps_counts(context, social_records) -> None:
    engine = TrendEngine(context)
    asyncio.run(engine.analyze_all(social_records))

    restored = TrendEngine(context)
    assert restored.load() is True
    asyncio.run(restored.analyze_all(social_records))

    assert restored.state.niches[AI].popularity == engine.state.niches[AI].popularity
    assert restored.state.keywords["diy shelves"].mentions == 1
    assert restored.state.keywords["diy shelves"].sentiment == engine.state.keywords["diy shelves"].sentiment


def test_load_without_saved_state_starts_empty(context) -> None:
    engine = TrendEngine(context)
    assert engine.load() is False
    assert set(engine.state.niches) == set(engine.niches)


def test_growth_follows_popularity_history(context) -> None:
    engine = TrendEngine(context)
    first = make_record("socialMedia", "twitter", twitter_payload(tweet_id="t1"), "2025-03-03T10:00:00+00:00")
    second = make_record("socialMedia", "twitter", twitter_payload(tweet_id="t2"), "2025-03-04T10:00:00+00:00")

    asyncio.run(engine.analyze_all([first]))
    assert engine.state.niches[AI].growth == 0.0

    asyncio.run(engine.analyze_all([first, second]))
    assert engine.state.niches[AI].history == [1, 2]
    assert engine.state.niches[AI].growth == 100.0
    assert engine.state.keywords["ai assistant"].mentions == 2


def test_compute_growth() -> None:
    assert compute_growth([]) == 0.0
    assert compute_growth([3]) == 0.0
    assert compute_growth([0, 4]) == 100.0
    assert compute_growth([0, 0]) == 0.0
    assert compute_growth([4, 3]) == -25.0


def test_products_and_sentiment(context) -> None:
    payload = {
        "query": "water filter",
        "results": [
            {"id": "B01", "title": "Survival water filter", "price": 24.99, "url": "https://shop.example/b01"},
            {"title": "Great emergency kit", "url": "https://shop.example/kit"},
        ],
    }
    engine = TrendEngine(context)
    asyncio.run(engine.analyze_all([make_record("affiliateNetworks", "amazon", payload)]))

    assert set(engine.state.products) >= {"B01"}
    assert len(engine.state.products) == 2
    assert engine.state.products["B01"].mentions == 1
    assert engine.state.products["B01"].sentiment == 1.0
    assert engine.state.niches["Survival & Emergency Preparedness"].popularity == 1
    assert {p.id for p in engine.state.niches["Survival & Emergency Preparedness"].products} >= {"B01"}


def test_timeframe_buckets(context, social_records) -> None:
    engine = TrendEngine(context)
    asyncio.run(engine.analyze_all(social_records))

    daily = engine.state.timeframes["daily"]
    assert daily["2025-03-03"]["records"] == 1
    assert daily["2025-03-03"]["niches"] == {AI: 1}
    weekly = engine.state.timeframes["weekly"]
    assert weekly["2025-W10"]["records"] == 2
    assert weekly["2025-W11"]["records"] == 1
    assert engine.state.timeframes["monthly"]["2025-03"]["records"] == 3


def test_predictions_rank_by_growth(context, social_records) -> None:
    engine = TrendEngine(context)
    asyncio.run(engine.analyze_all(social_records))

    result = engine.get_trend_predictions(top_n=2)
    assert result["success"] is True
    niches = result["predictions"]["niches"]
    assert len(niches) <= 2
    assert all(entry["direction"] in {"rising", "stable", "declining"} for entry in niches)
    keywords = result["predictions"]["keywords"]
    assert keywords[0]["keyword"] == "diy shelves"
    assert keywords[0]["predicted_growth"] == 10.0
    assert keywords[0]["direction"] == "rising"


def test_view_is_a_detached_snapshot(context, twitter_record) -> None:
    engine = TrendEngine(context)
    asyncio.run(engine.analyze_all([twitter_record]))
    view = engine.view()

    engine.state.niches[AI].popularity = 99
    assert view.niches[AI].popularity == 1


def test_malformed_records_are_skipped_and_the_batch_still_counts(context, twitter_record) -> None:
    broken = {"id": "broken", "category": "socialMedia", "source": "twitter", "timestamp": "2025-03-03T11:00:00+00:00", "payload": "nope"}
    not_a_list = make_record("socialMedia", "reddit", {"results": "not a list"}, "2025-03-03T12:00:00+00:00")
    odd_items = make_record("socialMedia", "blog", {"results": [1, None, ["nested"]]}, "2025-03-03T13:00:00+00:00")

    engine = TrendEngine(context)
    result = asyncio.run(engine.analyze_all([broken, not_a_list, twitter_record, odd_items]))

    assert result["success"] is True
    assert engine.state.niches[AI].popularity == 1
    assert sum(p.popularity for p in engine.state.niches.values()) == 1
    assert "broken" not in engine.state.processed_records
    assert len(engine.state.processed_records) == 3
    assert engine.get_timeframe_trends()["daily"]["2025-03-03"] == {"records": 3, "niches": {AI: 1}}
