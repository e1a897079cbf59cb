"""Request schemas for the District Lookup API."""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator

from district_lookup.config import ProviderName
from district_lookup.geometry import parse_district_number
from district_lookup.normalizer import AddressInput


class ValidateAddressRequest(BaseModel):
    """Body for POST /api/validate-address.

    Either ``address`` (free text) or the structured fields are used. A
    missing or empty address is reported as a 400, not a validation error.
    """

    address: Optional[str] = Field(None, description="Free-text address")
    street: Optional[str] = None
    apartment: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip5: Optional[str] = None
    zip4: Optional[str] = None
    methods: Optional[list[ProviderName]] = Field(
        None, description="Validation methods; defaults to the configured default methods"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "address": "2330 McCulloch Blvd, Lake Havasu City, AZ 86403",
                "methods": ["census", "usps"],
            }
        }
    }

    def to_address_input(self) -> AddressInput:
        if self.address is not None:
            return AddressInput.from_text(self.address)
        return AddressInput(
            street=self.street,
            apartment=self.apartment,
            city=self.city,
            state=self.state,
            zip5=self.zip5,
            zip4=self.zip4,
        )


class ClosestBoundaryRequest(BaseModel):
    """Body for POST /api/closest-boundary-point."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    state: str = Field(..., min_length=2, max_length=2)
    district: int = Field(..., description="District number; 0 or 'AL' for at-large")

    @field_validator("state")
    @classmethod
    def upper_state(cls, value: str) -> str:
        return value.upper()

    @field_validator("district", mode="before")
    @classmethod
    def parse_district(cls, value: Union[int, str, Any]) -> int:
        if isinstance(value, int):
            return value
        try:
            return parse_district_number(value)[0]
        except ValueError as e:
            raise ValueError(f"Invalid district: {value}") from e
