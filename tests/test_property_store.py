"""
Tests for loading stored property records.

Verifies:
- Enum fields accept display spellings ("Apartment", "Off-Plan")
- Unknown property types and completion statuses are rejected
- Dataset files load through InMemoryPropertyStore.from_json
"""

import asyncio
import json

import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from avm.property_store import InMemoryPropertyStore
from avm.valuation_engine import (
    CompletionStatus,
    PropertyRecord,
    PropertyStatus,
    PropertyType,
)


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def row():
    """A property row as it appears in a dataset file."""
    return {
        "property_id": "P-100",
        "community": "Business Bay",
        "property_type": "Apartment",
        "area_sqft": 950,
        "bedrooms": 1,
        "bathrooms": 1.5,
        "completion_status": "Off-Plan",
        "completion_year": 2026,
        "amenities": ["Pool"],
        "status": "available",
        "price": 1_450_000,
    }


# =============================================================================
# Test: PropertyRecord.from_dict
# =============================================================================

class TestFromDict:
    """Tests for building records from dataset rows."""

    def test_display_spellings_load(self, row):
        record = PropertyRecord.from_dict(row)

        assert record.property_type == PropertyType.APARTMENT
        assert record.completion_status == CompletionStatus.OFF_PLAN
        assert record.status == PropertyStatus.AVAILABLE

    @pytest.mark.parametrize("status", ["off-plan", "off plan", "OFF_PLAN", " Off-Plan "])
    def test_completion_status_spellings(self, row, status):
        row["completion_status"] = status

        assert PropertyRecord.from_dict(row).completion_status == CompletionStatus.OFF_PLAN

    def test_missing_completion_status_is_none(self, row):
        del row["completion_status"]

        assert PropertyRecord.from_dict(row).completion_status is None

    def test_unknown_property_type_rejected(self, row):
        row["property_type"] = "houseboat"

        with pytest.raises(ValueError, match="houseboat"):
            PropertyRecord.from_dict(row)

    def test_unknown_completion_status_rejected(self, row):
        row["completion_status"] = "under renovation"

        with pytest.raises(ValueError, match="under renovation"):
            PropertyRecord.from_dict(row)


# =============================================================================
# Test: InMemoryPropertyStore.from_json
# =============================================================================

class TestFromJson:
    """Tests for loading a dataset file."""

    def test_loads_properties_section(self, tmp_path, row):
        path = tmp_path / "dataset.json"
        path.write_text(json.dumps({"properties": [row], "market_data": []}))

        store = InMemoryPropertyStore.from_json(path)
        record = asyncio.run(store.get_by_id("P-100"))

        assert len(store) == 1
        assert record.property_type == PropertyType.APARTMENT
        assert record.completion_status == CompletionStatus.OFF_PLAN
