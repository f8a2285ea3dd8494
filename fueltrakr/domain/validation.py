"""Validation schemas for user-supplied forms.

Built on pydantic. ``validate_data`` turns a pydantic failure into an
``Err`` result with one readable line per problem.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from fueltrakr.domain.constants import (
    MAX_FUEL_AMOUNT,
    MAX_FUEL_COST,
    MAX_MILEAGE,
    MAX_NAME_LENGTH,
    MAX_NOTES_LENGTH,
    MAX_PASSWORD_LENGTH,
    MAX_STOCK_NUMBER_LENGTH,
    MIN_FUEL_AMOUNT,
    MIN_FUEL_COST,
    MIN_MILEAGE,
    MIN_NAME_LENGTH,
    MIN_PASSWORD_LENGTH,
    VIN_PATTERN,
)
from fueltrakr.domain.errors import ValidationFailure
from fueltrakr.domain.models.fuel import Location
from fueltrakr.domain.models.result import Err, ErrorKind, Ok, ServiceResult

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
NAME_PATTERN = r"^[a-zA-Z\s'-]+$"

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class SignUpForm(BaseModel):
    """New account request."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH)
    name: str = Field(min_length=MIN_NAME_LENGTH, max_length=MAX_NAME_LENGTH, pattern=NAME_PATTERN)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.lower()


class FuelEntryDraft(BaseModel):
    """A fuel entry as submitted by a porter, before the backend assigns an id.

    At least one of ``stock_number`` and ``vin`` identifies the vehicle.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    stock_number: Optional[str] = Field(default=None, min_length=1, max_length=MAX_STOCK_NUMBER_LENGTH)
    vin: Optional[str] = Field(default=None, pattern=VIN_PATTERN)
    mileage: float = Field(gt=MIN_MILEAGE, le=MAX_MILEAGE)
    fuel_amount: float = Field(ge=MIN_FUEL_AMOUNT, le=MAX_FUEL_AMOUNT)
    fuel_cost: float = Field(ge=MIN_FUEL_COST, le=MAX_FUEL_COST)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)
    location: Optional[Location] = None
    receipt_photo: Optional[str] = None
    vin_photo: Optional[str] = None

    @field_validator("vin")
    @classmethod
    def _uppercase_vin(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value

    @model_validator(mode="after")
    def _require_vehicle_id(self) -> "FuelEntryDraft":
        if not self.stock_number and not self.vin:
            raise ValueError("Either stock number or VIN is required")
        return self

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for ``POST /fuel-entries``."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def format_errors(error: ValidationError) -> List[str]:
    """One ``field: message`` line per pydantic error."""
    lines = []
    for item in error.errors(include_url=False):
        message = str(item.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        location = ".".join(str(part) for part in item.get("loc", ()))
        lines.append(f"{location}: {message}" if location else message)
    return lines or ["Validation failed"]


def parse_or_raise(schema: Type[SchemaT], data: Any) -> SchemaT:
    """Validates ``data`` against ``schema``.

    Raises:
        ValidationFailure: If the data violates the schema.
    """
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise ValidationFailure(format_errors(e)) from e


def validate_data(schema: Type[SchemaT], data: Any) -> ServiceResult[SchemaT]:
    """Validates ``data`` against ``schema`` and returns a result instead of raising."""
    try:
        return Ok(parse_or_raise(schema, data))
    except ValidationFailure as e:
        return Err(message=str(e), kind=ErrorKind.VALIDATION)
