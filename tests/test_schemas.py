"""
Tests for request validation.

Manual feature bundles must name community, property type, bedrooms and
a positive area; every failure surfaces as InvalidInputError with the
individual messages attached.
"""

import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from avm.exceptions import InvalidInputError
from avm.schemas import (
    EstimateValueRequest,
    parse_estimate_request,
    parse_rental_request,
)
from avm.valuation_engine import (
    CompletionStatus,
    ManualPropertyInput,
    PropertyType,
    ValuationAttributes,
)


@pytest.fixture
def manual_request():
    """Complete manual request body."""
    return {
        "community": "Dubai Marina",
        "property_type": "apartment",
        "bedrooms": 2,
        "bathrooms": 2,
        "area_sqft": 1250,
        "amenities": ["Pool", "Gym"],
        "completion_status": "ready",
        "completion_year": 2016,
        "floor": 18,
        "view": "Sea View",
    }


class TestEstimateRequest:
    """Tests for estimate request parsing."""

    def test_property_id_only(self):
        request = parse_estimate_request({"property_id": "DXB-MAR-0001"})

        assert not request.is_manual
        assert request.property_id == "DXB-MAR-0001"

    def test_manual_request(self, manual_request):
        request = parse_estimate_request(manual_request)

        assert request.is_manual
        assert request.property_type == PropertyType.APARTMENT
        assert request.completion_status == CompletionStatus.READY

    def test_manual_input_conversion(self, manual_request):
        target = parse_estimate_request(manual_request).to_manual_input()

        assert isinstance(target, ManualPropertyInput)
        assert isinstance(target, ValuationAttributes)
        assert target.property_id is None
        assert target.area_sqft == 1250
        assert target.amenities == ("Pool", "Gym")

    def test_studio_is_valid(self, manual_request):
        manual_request["bedrooms"] = 0
        assert parse_estimate_request(manual_request).bedrooms == 0

    @pytest.mark.parametrize("field", ["community", "property_type", "bedrooms", "area_sqft"])
    def test_missing_mandatory_field(self, manual_request, field):
        del manual_request[field]

        with pytest.raises(InvalidInputError) as excinfo:
            parse_estimate_request(manual_request)

        assert any(field in message for message in excinfo.value.errors)

    def test_blank_community_rejected(self, manual_request):
        manual_request["community"] = "   "

        with pytest.raises(InvalidInputError):
            parse_estimate_request(manual_request)

    @pytest.mark.parametrize("overrides", [
        {"area_sqft": 0},
        {"area_sqft": -100},
        {"bedrooms": -1},
        {"property_type": "castle"},
        {"completion_status": "someday"},
        {"listed_price": 0},
    ])
    def test_invalid_values(self, manual_request, overrides):
        manual_request.update(overrides)

        with pytest.raises(InvalidInputError):
            parse_estimate_request(manual_request)

    def test_invalid_input_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_estimate_request({})

    def test_model_instances_pass_through(self, manual_request):
        request = EstimateValueRequest(**manual_request)
        assert parse_estimate_request(request) is request


class TestRentalRequest:
    """Tests for rental request parsing."""

    def test_valid_request(self):
        request = parse_rental_request({"property_id": "P-1", "purchase_price": 2_000_000})

        assert request.property_id == "P-1"
        assert request.purchase_price == 2_000_000

    def test_purchase_price_optional(self):
        assert parse_rental_request({"property_id": "P-1"}).purchase_price is None

    @pytest.mark.parametrize("body", [
        {},
        {"property_id": ""},
        {"property_id": "P-1", "purchase_price": 0},
        {"property_id": "P-1", "purchase_price": -10},
    ])
    def test_invalid_requests(self, body):
        with pytest.raises(InvalidInputError):
            parse_rental_request(body)
