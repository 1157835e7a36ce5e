"""In-memory record store with an optional JSON file behind it."""

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .models import Record
from .text_heuristics import serialize_payload

logger = logging.getLogger(__name__)

CATEGORIES = ("socialMedia", "affiliateNetworks", "websites", "trends", "competitors")


def _parse_time(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class RecordStore:
    """Keyed collection of :class:`Record` objects grouped by category.

    Records are indexed by day, by ``category_source`` and by lower-cased
    query. When ``path`` is given, every mutation is written through to it.
    """

    def __init__(self, path: Optional[Path] = None, now_provider: Optional[Callable[[], datetime]] = None):
        self.path = Path(path) if path else None
        self._now = now_provider or (lambda: datetime.now(timezone.utc))
        self._records: Dict[str, Dict[str, Record]] = {category: {} for category in CATEGORIES}
        self._by_date: Dict[str, List[str]] = {}
        self._by_source: Dict[str, List[str]] = {}
        self._by_keyword: Dict[str, List[str]] = {}

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> int:
        """Load records from ``path``; returns the number loaded."""
        if not self.path or not self.path.exists():
            return 0
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not load records from {self.path}: {e}")
            return 0
        return self.load_records(raw)

    def load_records(self, raw: Any) -> int:
        """Replace the contents with *raw*.

        Accepts a list of record dicts or a ``{category: {id: record}}``
        mapping, the layout :meth:`save` writes.
        """
        if isinstance(raw, dict):
            items = [item for bucket in raw.values() if isinstance(bucket, dict) for item in bucket.values()]
        elif isinstance(raw, list):
            items = raw
        else:
            logger.warning(f"Unexpected record file layout: {type(raw).__name__}")
            return 0

        self._reset()
        loaded = 0
        for item in items:
            try:
                record = Record.model_validate(item)
            except ValueError as e:
                logger.warning(f"Skipping malformed record: {e}")
                continue
            self._insert(record)
            loaded += 1
        logger.info(f"Loaded {loaded} records")
        return loaded

    def save(self) -> bool:
        if not self.path:
            return False
        document = {
            category: {record_id: record.model_dump(mode="json") for record_id, record in bucket.items()}
            for category, bucket in self._records.items()
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False, default=str)
        except OSError as e:
            logger.error(f"Could not save records to {self.path}: {e}")
            return False
        return True

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def store(self, category: str, source: str, payload: Dict[str, Any]) -> str:
        """Store *payload* and return the new record id."""
        stamp = self._now()
        record_id = f"{category}_{source}_{stamp.isoformat()}"
        while self.get(record_id) is not None:
            stamp += timedelta(microseconds=1)
            record_id = f"{category}_{source}_{stamp.isoformat()}"

        record = Record(
            id=record_id, category=category, source=source, timestamp=stamp.isoformat(), payload=dict(payload)
        )
        self._insert(record)
        self.save()
        return record_id

    def delete(self, record_id: str) -> bool:
        for bucket in self._records.values():
            if record_id in bucket:
                del bucket[record_id]
                for index in (self._by_date, self._by_source, self._by_keyword):
                    for key in list(index):
                        index[key] = [item for item in index[key] if item != record_id]
                self.save()
                return True
        return False

    def clear(self) -> None:
        self._reset()
        self.save()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, record_id: str) -> Optional[Record]:
        for bucket in self._records.values():
            if record_id in bucket:
                return bucket[record_id]
        return None

    def get_by_category(self, category: str) -> Dict[str, Record]:
        return dict(self._records.get(category, {}))

    def get_by_source(self, category: str, source: str) -> List[Record]:
        return self._resolve(self._by_source.get(f"{category}_{source}", []))

    def get_by_date(self, date: str) -> List[Record]:
        return self._resolve(self._by_date.get(date, []))

    def get_by_keyword(self, keyword: str) -> List[Record]:
        return self._resolve(self._by_keyword.get(keyword.lower(), []))

    def search(
        self,
        category: Optional[str] = None,
        source: Optional[str] = None,
        keyword: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> List[Record]:
        """Return records matching every given criterion, in category then insertion order."""
        records = [
            record
            for name, bucket in self._records.items()
            if category is None or name == category
            for record in bucket.values()
        ]

        if source:
            records = [record for record in records if record.source == source]

        if keyword:
            needle = keyword.lower()
            records = [record for record in records if self._mentions(record, needle)]

        if date_from:
            start = _parse_time(date_from)
            records = [record for record in records if _parse_time(record.timestamp) >= start]
        if date_to:
            end = _parse_time(date_to)
            records = [record for record in records if _parse_time(record.timestamp) <= end]

        return records

    def stats(self) -> Dict[str, Any]:
        by_category = {category: len(bucket) for category, bucket in self._records.items()}
        return {
            "total_items": sum(by_category.values()),
            "by_category": by_category,
            "by_source": {key: len(ids) for key, ids in self._by_source.items()},
            "by_date": {key: len(ids) for key, ids in self._by_date.items()},
        }

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._records.values())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self._records = {category: {} for category in CATEGORIES}
        self._by_date, self._by_source, self._by_keyword = {}, {}, {}

    def _insert(self, record: Record) -> None:
        self._records.setdefault(record.category, {})[record.id] = record
        self._by_date.setdefault(record.timestamp[:10], []).append(record.id)
        self._by_source.setdefault(f"{record.category}_{record.source}", []).append(record.id)
        if record.query:
            self._by_keyword.setdefault(record.query.lower(), []).append(record.id)

    def _resolve(self, ids: List[str]) -> List[Record]:
        records = [self.get(record_id) for record_id in ids]
        return [record for record in records if record is not None]

    @staticmethod
    def _mentions(record: Record, needle: str) -> bool:
        if needle in record.query.lower():
            return True
        results = record.results
        if results is None:
            return False
        if isinstance(results, list):
            return any(needle in serialize_payload(item).lower() for item in results)
        return needle in serialize_payload(results).lower()
