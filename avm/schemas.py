"""
Request schemas for the valuation service.

Validates raw estimate and rental requests (e.g. decoded JSON) with
pydantic and turns validation failures into InvalidInputError.
"""

from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError, model_validator

from avm.exceptions import InvalidInputError
from avm.valuation_engine import CompletionStatus, ManualPropertyInput, PropertyType


# Fields a manual bundle must carry when no property id is given
REQUIRED_MANUAL_FIELDS = ("community", "property_type", "bedrooms", "area_sqft")


class EstimateValueRequest(BaseModel):
    """Estimate request: a stored property id or a manual feature bundle."""

    property_id: Optional[str] = None

    # Manual property features (required if no property_id)
    community: Optional[str] = None
    property_type: Optional[PropertyType] = None
    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[float] = Field(default=None, ge=0)
    area_sqft: Optional[int] = Field(default=None, gt=0)

    amenities: List[str] = Field(default_factory=list)
    completion_status: Optional[CompletionStatus] = None
    completion_year: Optional[int] = None
    floor: Optional[int] = None
    view: Optional[str] = None
    listed_price: Optional[float] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _require_manual_fields(self) -> "EstimateValueRequest":
        if self.property_id:
            return self

        missing = [name for name in REQUIRED_MANUAL_FIELDS if getattr(self, name) is None]
        if self.community is not None and not self.community.strip():
            missing.append("community")
        if missing:
            raise ValueError(
                f"missing required fields without property_id: {', '.join(missing)}"
            )
        return self

    @property
    def is_manual(self) -> bool:
        return not self.property_id

    def to_manual_input(self) -> ManualPropertyInput:
        """Build the ad hoc target for a manual request."""
        return ManualPropertyInput(
            community=self.community.strip(),
            property_type=self.property_type,
            bedrooms=self.bedrooms,
            bathrooms=self.bathrooms,
            area_sqft=self.area_sqft,
            completion_status=self.completion_status,
            completion_year=self.completion_year,
            amenities=tuple(self.amenities),
            floor=self.floor,
            view=self.view,
            listed_price=self.listed_price,
        )


class RentalEstimateRequest(BaseModel):
    """Rental estimate request for a stored property."""

    property_id: str = Field(min_length=1)
    purchase_price: Optional[float] = Field(default=None, gt=0)


def _error_messages(exc: ValidationError) -> List[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return messages


def parse_estimate_request(
    data: Union[EstimateValueRequest, Mapping[str, Any]],
) -> EstimateValueRequest:
    """
    Validate a raw estimate request.

    Raises:
        InvalidInputError: Missing manual fields, non-positive area, bad enums
    """
    if isinstance(data, EstimateValueRequest):
        return data
    try:
        return EstimateValueRequest.model_validate(data)
    except ValidationError as exc:
        raise InvalidInputError(_error_messages(exc)) from exc


def parse_rental_request(
    data: Union[RentalEstimateRequest, Mapping[str, Any]],
) -> RentalEstimateRequest:
    """
    Validate a raw rental request.

    Raises:
        InvalidInputError: Missing property id or non-positive purchase price
    """
    if isinstance(data, RentalEstimateRequest):
        return data
    try:
        return RentalEstimateRequest.model_validate(data)
    except ValidationError as exc:
        raise InvalidInputError(_error_messages(exc)) from exc
