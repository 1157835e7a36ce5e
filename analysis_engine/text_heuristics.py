"""Counting heuristics shared by the engines.

None of this is NLP: keywords are the most frequent long tokens of the
serialized payload and sentiment is a word-list tally.
"""

import hashlib
import json
import re
from collections import Counter
from typing import Any, Dict, List, Optional

POSITIVE_WORDS = (
    "good", "great", "excellent", "amazing", "awesome", "fantastic",
    "wonderful", "best", "love", "perfect", "recommend", "positive",
    "happy", "satisfied", "quality", "easy", "helpful", "valuable",
)

NEGATIVE_WORDS = (
    "bad", "poor", "terrible", "awful", "horrible", "worst",
    "hate", "difficult", "negative", "problem", "issue", "disappointing",
    "waste", "expensive", "overpriced", "avoid", "broken", "useless",
)

MIN_TOKEN_LENGTH = 4
DEFAULT_KEYWORD_LIMIT = 10

_POSITIVE_RE = re.compile(r"\b(?:" + "|".join(POSITIVE_WORDS) + r")\b", re.IGNORECASE)
_NEGATIVE_RE = re.compile(r"\b(?:" + "|".join(NEGATIVE_WORDS) + r")\b", re.IGNORECASE)
_NON_WORD_RE = re.compile(r"[^\w\s]")


def serialize_payload(value: Any) -> str:
    """Serialize *value* the same way every time so substring tests are stable."""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)


def top_tokens(text: str, limit: int = DEFAULT_KEYWORD_LIMIT) -> List[str]:
    """Most frequent lower-cased tokens longer than three characters."""
    words = _NON_WORD_RE.sub(" ", text.lower()).split()
    counts = Counter(word for word in words if len(word) >= MIN_TOKEN_LENGTH)
    return [word for word, _ in counts.most_common(limit)]


def extract_keywords(results: Any, limit: int = DEFAULT_KEYWORD_LIMIT) -> List[str]:
    """Top *limit* tokens of the serialized *results*."""
    return top_tokens(serialize_payload(results), limit)


def sentiment_of_text(text: str) -> float:
    """Word-list sentiment in [-1, 1]; 0.0 when no listed word occurs."""
    positive = len(_POSITIVE_RE.findall(text))
    negative = len(_NEGATIVE_RE.findall(text))
    total = positive + negative
    if total == 0:
        return 0.0
    return round((positive - negative) / total, 2)


def calculate_sentiment(results: Any) -> float:
    """Sentiment of the serialized *results*."""
    return sentiment_of_text(serialize_payload(results))


def coerce_float(value: Any, default: float = 0.0) -> float:
    """Convert prices such as ``"$12.99"`` or ``"15%"`` to float."""
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = value.replace("$", "").replace("%", "").replace(",", "").strip()
        try:
            return float(cleaned)
        except ValueError:
            return default
    return default


def coerce_int(value: Any, default: int = 0) -> int:
    """Convert counts such as ``5000``, ``"5,000"`` or ``"35.8k"`` to int."""
    if isinstance(value, str):
        lowered = value.replace(",", "").strip().lower()
        multiplier = 1
        if lowered.endswith("k"):
            lowered, multiplier = lowered[:-1], 1_000
        elif lowered.endswith("m"):
            lowered, multiplier = lowered[:-1], 1_000_000
        try:
            return int(float(lowered) * multiplier)
        except ValueError:
            return default
    return int(coerce_float(value, default))


def optional_str(value: Any) -> Optional[str]:
    """``str(value)`` unless *value* is missing or blank."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def synthesize_product_id(source: str, title: str, url: str) -> str:
    """Stable id for products whose payload carries none."""
    digest = hashlib.sha1(f"{source}|{title}|{url}".encode("utf-8")).hexdigest()
    return f"product_{digest[:12]}"


def extract_products(results: Any, source: str = "unknown") -> List[Dict[str, Any]]:
    """Return product dicts for every result item exposing ``title`` or ``name``."""
    if not isinstance(results, list):
        return []

    products = []
    for item in results:
        if not isinstance(item, dict):
            continue
        title = item.get("title") or item.get("name")
        if not title:
            continue

        title = str(title)
        url = str(item.get("url") or item.get("link") or "")
        item_source = str(item.get("source") or source or "unknown")
        products.append({
            "id": optional_str(item.get("id")) or synthesize_product_id(item_source, title, url),
            "title": title,
            "description": str(item.get("description") or ""),
            "price": coerce_float(item.get("price")),
            "url": url,
            "image": str(item.get("image") or ""),
            "source": item_source,
        })
    return products


def merge_unique(target: List[str], values: List[str]) -> None:
    """Append the values of *values* missing from *target*, keeping order."""
    seen = set(target)
    for value in values:
        if value not in seen:
            seen.add(value)
            target.append(value)
