"""Fixed niche table and the substring rules used to match text against it."""

from typing import Dict, Iterable, List

PREFERRED_NICHES: List[str] = [
    "Survival & Emergency Preparedness",
    "DIY & Home Improvement",
    "Personal Finance & Making Money Online",
    "E-Learning & Skill-Building",
    "AI & Automation Tools",
]

# Competitors whose text matches no niche land here; niche-scoped views skip it.
UNCLASSIFIED_NICHE = "Unclassified"

NICHE_KEYWORDS: Dict[str, List[str]] = {
    "Survival & Emergency Preparedness": [
        "survival", "emergency", "preparedness", "prepping", "disaster",
        "food storage", "water filtration", "solar generator", "first aid",
        "emergency kit", "bug out bag", "survival gear",
    ],
    "DIY & Home Improvement": [
        "diy", "home improvement", "tools", "homesteading", "woodworking",
        "gardening", "home repair", "power tools", "hand tools", "renovation",
        "home projects", "building",
    ],
    "Personal Finance & Making Money Online": [
        "personal finance", "money", "investing", "budget", "passive income",
        "side hustle", "make money online", "financial freedom", "debt free",
        "retirement", "stocks", "real estate", "cryptocurrency",
    ],
    "E-Learning & Skill-Building": [
        "e-learning", "online course", "skill building", "education", "training",
        "coding", "programming", "bootcamp", "certification", "tutorial",
        "learn online", "skills development",
    ],
    "AI & Automation Tools": [
        "ai", "artificial intelligence", "automation", "machine learning",
        "chatbot", "ai writing", "ai tools", "automation software", "workflow",
        "productivity tools", "ai assistant", "data analysis",
    ],
}


def get_niche_keywords(niche: str) -> List[str]:
    """Return the keyword list for *niche* (empty for unknown niches)."""
    return list(NICHE_KEYWORDS.get(niche, []))


def matches_niche(niche: str, *texts: str) -> bool:
    """True when any keyword of *niche* occurs, case-insensitively, in any of *texts*."""
    keywords = NICHE_KEYWORDS.get(niche, [])
    lowered = [text.lower() for text in texts if text]
    return any(keyword in text for keyword in keywords for text in lowered)


def count_niche_hits(niche: str, text: str) -> int:
    """Number of distinct *niche* keywords found in *text*."""
    text_lower = (text or "").lower()
    return sum(1 for keyword in NICHE_KEYWORDS.get(niche, []) if keyword in text_lower)


def matching_niches(texts: Iterable[str], niches: Iterable[str] = PREFERRED_NICHES) -> List[str]:
    """Return every niche of *niches* matched by *texts*, in table order."""
    texts = list(texts)
    return [niche for niche in niches if matches_niche(niche, *texts)]


def determine_niche(text: str, niches: Iterable[str] = PREFERRED_NICHES) -> str:
    """Pick the niche with the most keyword hits in *text*.

    Ties go to the niche listed first; text without any hit is
    :data:`UNCLASSIFIED_NICHE`.
    """
    best_niche, best_hits = UNCLASSIFIED_NICHE, 0
    for niche in niches:
        hits = count_niche_hits(niche, text)
        if hits > best_hits:
            best_niche, best_hits = niche, hits
    return best_niche


def is_keyword_relevant_to_niche(keyword: str, niche: str) -> bool:
    """True when *keyword* contains, or is contained in, one of the niche keywords."""
    keyword_lower = keyword.lower().strip()
    if not keyword_lower:
        return False
    return any(
        niche_keyword in keyword_lower or keyword_lower in niche_keyword
        for niche_keyword in NICHE_KEYWORDS.get(niche, [])
    )


def is_text_relevant_to_niche(text: str, niche: str) -> bool:
    """True when any niche keyword appears in *text*."""
    return matches_niche(niche, text)
