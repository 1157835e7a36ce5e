from analysis_engine.niches import (
    PREFERRED_NICHES,
    UNCLASSIFIED_NICHE,
    determine_niche,
    is_keyword_relevant_to_niche,
    matches_niche,
    matching_niches,
)

AI = "AI & Automation Tools"
DIY = "DIY & Home Improvement"


def test_matches_niche_is_case_insensitive() -> None:
    assert matches_niche(DIY, "Best POWER TOOLS of 2025")
    assert matches_niche(AI, "", "A new Chatbot launched")
    assert not matches_niche(DIY, "quarterly earnings call")


def test_unknown_niche_matches_nothing() -> None:
    assert not matches_niche("Underwater Basket Weaving", "diy ai survival")


def test_determine_niche_prefers_most_hits() -> None:
    # "tools" is a DIY keyword, but "ai" and "ai tools" both hit the AI niche
    assert determine_niche("ai tools roundup") == AI


def test_determine_niche_ties_go_to_table_order() -> None:
    assert determine_niche("diy survival") == PREFERRED_NICHES[0]


def test_determine_niche_without_hits_is_unclassified() -> None:
    assert determine_niche("weather today") == UNCLASSIFIED_NICHE


def test_matching_niches_returns_every_match_in_order() -> None:
    assert matching_niches(["diy chatbot"]) == [DIY, AI]


def test_keyword_relevance_is_bidirectional() -> None:
    assert is_keyword_relevant_to_niche("survival gear tips", "Survival & Emergency Preparedness")
    assert is_keyword_relevant_to_niche("gear", "Survival & Emergency Preparedness")
    assert not is_keyword_relevant_to_niche("knitting", "Survival & Emergency Preparedness")
    assert not is_keyword_relevant_to_niche("   ", AI)
