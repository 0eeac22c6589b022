"""
In-memory Property Store

Holds PropertyRecord objects in a dict and answers candidate queries by
scanning them. Used by the CLI and the tests; the surrounding application
supplies its own database-backed PropertyStore in production.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from avm.valuation_engine import CandidateQuery, PropertyRecord, PropertyStore


logger = logging.getLogger(__name__)


class InMemoryPropertyStore(PropertyStore):
    """PropertyStore backed by a dict keyed on property id."""

    def __init__(self, records: Iterable[PropertyRecord] = ()):
        """
        Initialize the store.

        Args:
            records: Initial property records
        """
        self._records: dict[str, PropertyRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: PropertyRecord) -> None:
        """Add or replace a record."""
        self._records[record.property_id] = record

    def __len__(self) -> int:
        return len(self._records)

    async def find_candidates(self, query: CandidateQuery) -> List[PropertyRecord]:
        """Records matching the query, in insertion order, at most query.limit."""
        matches = [r for r in self._records.values() if query.matches(r)]
        return matches[: query.limit]

    async def get_by_id(self, property_id: str) -> Optional[PropertyRecord]:
        """Record with the given id, or None."""
        return self._records.get(property_id)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "InMemoryPropertyStore":
        """
        Load records from a JSON file.

        Accepts either a list of property objects or an object with a
        "properties" list (the CLI dataset format).
        """
        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        rows = data.get("properties", []) if isinstance(data, dict) else data
        store = cls(PropertyRecord.from_dict(row) for row in rows)
        logger.info("Loaded %d properties from %s", len(store), path)
        return store
