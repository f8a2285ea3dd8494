"""Fuel entry models.

The backend speaks camelCase JSON (``stockNumber``, ``fuelAmount``,
``submittedAt``); the models accept either spelling and always serialize
with the camelCase aliases.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Location(BaseModel):
    """Where the fill-up happened."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: Optional[str] = None


class FuelEntry(BaseModel):
    """A recorded fuel purchase. Immutable once created."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    user_id: str
    user_name: str
    stock_number: Optional[str] = None
    vin: Optional[str] = None
    mileage: float = Field(gt=0)
    fuel_amount: float = Field(gt=0)
    fuel_cost: float = Field(gt=0)
    timestamp: datetime
    notes: Optional[str] = None
    location: Optional[Location] = None
    receipt_photo: Optional[str] = None
    vin_photo: Optional[str] = None
    submitted_at: datetime

    @property
    def vehicle_label(self) -> str:
        return self.stock_number or self.vin or "-"

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PhotoUpload(BaseModel):
    """Where an uploaded receipt or VIN photo ended up."""

    model_config = ConfigDict(frozen=True)

    url: str
    path: str
