"""
Database Schemas for the Rent Car back office

Each Pydantic model below represents a MongoDB collection. The collection
names are listed in COLLECTIONS; a document's `_id` is the entity `id`.
"""

import json
import logging
from datetime import date, datetime, timezone
from typing import Annotated, Any, Dict, Iterable, List, Literal, Optional, Type, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)

BookingStatus = Literal["booked", "active", "completed", "cancelled"]
TERMINAL_STATUSES = ("cancelled", "completed")


def to_utc_naive(value: datetime) -> datetime:
    """Convert aware datetimes to naive UTC; naive ones are taken as UTC already."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UtcDateTime = Annotated[datetime, AfterValidator(to_utc_naive)]


class Entity(BaseModel):
    # CSV imports hand over numbers for phone/plate-like columns
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: Optional[str] = Field(None, description="Document key")

    @model_validator(mode="before")
    @classmethod
    def drop_blank_values(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v != ""}
        return data


class Car(Entity):
    name: str = Field(..., description="Display name, e.g., Toyota Avanza")
    plate: str = Field(..., description="License plate")
    type: str = Field("MPV", description="Category, one of the configured car categories")
    pricing: Dict[str, float] = Field(default_factory=dict, description="Tariff per rental package")
    price_24h: Optional[float] = Field(None, ge=0, description="Legacy flat daily tariff")
    status: str = Field("Available", description="Available, Rented, Maintenance")
    image: Optional[str] = None
    partner_id: Optional[str] = Field(None, description="Owning partner, if not company owned")

    @field_validator("pricing", mode="before")
    @classmethod
    def parse_pricing(cls, v):
        # exported as JSON text inside the CSV cell
        if isinstance(v, str):
            return json.loads(v)
        return v


class Driver(Entity):
    name: str
    phone: Optional[str] = None
    daily_rate: float = Field(0, ge=0, description="Fee per rental day")
    status: str = Field("Active", description="Active or Inactive")
    image: Optional[str] = None


class Partner(Entity):
    name: str
    phone: Optional[str] = None
    split_percentage: float = Field(70, ge=0, le=100, description="Partner share of revenue")
    image: Optional[str] = None


class Customer(Entity):
    name: str
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None


class HighSeason(Entity):
    name: str
    start_date: date = Field(..., description="First surcharged day")
    end_date: date = Field(..., description="Last surcharged day (inclusive)")
    price_increase: float = Field(0, ge=0, description="Flat surcharge per day")


class Booking(Entity):
    car_id: Optional[str] = None
    driver_id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    start_date: UtcDateTime
    end_date: UtcDateTime
    package_type: Optional[str] = None
    status: BookingStatus = Field("booked", description="booked, active, completed, cancelled")
    base_price: float = 0
    driver_fee: float = 0
    high_season_fee: float = 0
    delivery_fee: float = 0
    total_price: float = 0
    amount_paid: float = 0
    notes: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalise_status(cls, v):
        # older records use "Active", "Cancelled", ...
        if isinstance(v, str):
            return v.strip().lower()
        return v


class Transaction(Entity):
    transaction_date: date
    amount: float
    type: Literal["income", "expense"] = "income"
    category: Optional[str] = None
    description: Optional[str] = None
    booking_id: Optional[str] = None


class AppSettings(BaseModel):
    company_name: str
    tagline: str = ""
    address: str = ""
    phone: str = ""
    email: Optional[EmailStr] = None
    website: str = ""
    invoice_footer: str = ""
    logo_url: Optional[str] = None
    theme_color: str = "red"
    dark_mode: bool = False
    payment_terms: str = ""
    terms_and_conditions: str = ""
    whatsapp_template: str = ""
    car_categories: List[str] = Field(default_factory=list)
    rental_packages: List[str] = Field(default_factory=list)


COLLECTIONS: Dict[str, Type[Entity]] = {
    "cars": Car,
    "drivers": Driver,
    "partners": Partner,
    "customers": Customer,
    "bookings": Booking,
    "high_seasons": HighSeason,
    "transactions": Transaction,
}

SETTINGS_COLLECTION = "app_settings"

E = TypeVar("E", bound=BaseModel)


def parse_entities(model: Type[E], rows: Iterable[Dict[str, Any]], skip_invalid: bool = True) -> List[E]:
    """Validate open records into `model`.

    Rows that don't fit are logged and skipped, or re-raised when
    `skip_invalid` is False.
    """
    parsed = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as e:
            if not skip_invalid:
                raise
            logger.warning("Skipping invalid %s record %r: %s", model.__name__, row.get("id"), e)
    return parsed
