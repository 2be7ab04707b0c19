"""
Pydantic schemas for the CityHub FastAPI backend.
"""

from __future__ import annotations

import uuid
from datetime import date
from enum import Enum
from typing import Annotated, Any, Literal, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    ValidationInfo,
    field_validator,
    model_validator,
)


class Role(str, Enum):
    user = "user"
    admin = "admin"
    superadmin = "superadmin"
    restaurantpartner = "restaurantpartner"
    storepartner = "storepartner"


def _uuid_string(value: str) -> str:
    return str(uuid.UUID(value))


NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True)]
UuidStr = Annotated[str, AfterValidator(_uuid_string)]


def _literal_true(value: Any) -> bool:
    # Query flags are on only for the literal string "true".
    return value is True or value == "true"


# ---------------------------------------------------------------------------
# Query strings
# ---------------------------------------------------------------------------


class ListQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    search: Optional[NonEmptyStr] = None
    status: Optional[Literal["active", "inactive"]] = None
    include_inactive: bool = Field(default=False, alias="includeInactive")
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
    order: Literal["asc", "desc"] = "desc"

    @field_validator("include_inactive", mode="before")
    @classmethod
    def _include_inactive(cls, value: Any) -> bool:
        return _literal_true(value)

    @field_validator("limit", "offset", mode="before")
    @classmethod
    def _blank_is_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or value == "":
            return cls.model_fields[info.field_name].default
        return value


class RestaurantListQuery(ListQuery):
    city: Optional[NonEmptyStr] = None
    area: Optional[NonEmptyStr] = None
    sort: Literal["created_at", "name", "rating", "distance"] = "created_at"


class StoreListQuery(ListQuery):
    city: Optional[NonEmptyStr] = None
    region: Optional[NonEmptyStr] = None
    country: Optional[NonEmptyStr] = None
    category: Optional[NonEmptyStr] = None
    subcategory: Optional[NonEmptyStr] = None
    tag: Optional[NonEmptyStr] = None
    is_featured: Optional[bool] = None
    sort: Literal["created_at", "updated_at", "name", "sort_order"] = "created_at"

    @field_validator("is_featured", mode="before")
    @classmethod
    def _is_featured(cls, value: Any) -> Optional[bool]:
        if value is None:
            return None
        return _literal_true(value)


class DeleteQuery(BaseModel):
    hard: bool = False

    @field_validator("hard", mode="before")
    @classmethod
    def _hard(cls, value: Any) -> bool:
        return _literal_true(value)


class StoreDetailQuery(BaseModel):
    include: Optional[str] = None

    @property
    def expansions(self) -> set[str]:
        return {s.strip() for s in (self.include or "").split(",") if s.strip()}


# ---------------------------------------------------------------------------
# Restaurants
# ---------------------------------------------------------------------------


class OpeningWindow(BaseModel):
    open: str
    close: str


class CreateRestaurantRequest(BaseModel):
    name: NonEmptyStr
    slug: NonEmptyStr
    phone: Optional[TrimmedStr] = None
    city: Optional[TrimmedStr] = None
    area: Optional[TrimmedStr] = None
    full_address: Optional[TrimmedStr] = None

    cuisines: list[str] = Field(default_factory=list)
    cost_for_two: Optional[int] = None
    distance: Optional[float] = None
    offer: Optional[TrimmedStr] = None

    facilities: list[str] = Field(default_factory=list)
    highlights: list[str] = Field(default_factory=list)
    worth_visit: list[str] = Field(default_factory=list)

    opening_hours: dict[str, OpeningWindow] = Field(default_factory=dict)

    # Free-form payloads stored as-is.
    reviews: Any = Field(default_factory=list)
    menu: Any = Field(default_factory=list)

    food_images: list[str] = Field(default_factory=list)
    ambience_images: list[str] = Field(default_factory=list)
    cover_image: Optional[str] = None

    is_active: bool = True

    latitude: Optional[float] = None
    longitude: Optional[float] = None

    booking_enabled: bool = True
    avg_duration_minutes: int = 90
    max_bookings_per_slot: Optional[int] = None
    advance_booking_days: int = 30

    owner_user_id: Optional[UuidStr] = None


class UpdateRestaurantRequest(BaseModel):
    name: Optional[NonEmptyStr] = None
    slug: Optional[NonEmptyStr] = None
    phone: Optional[TrimmedStr] = None
    city: Optional[TrimmedStr] = None
    area: Optional[TrimmedStr] = None
    full_address: Optional[TrimmedStr] = None

    cuisines: Optional[list[str]] = None
    cost_for_two: Optional[int] = None
    distance: Optional[float] = None
    offer: Optional[TrimmedStr] = None

    facilities: Optional[list[str]] = None
    highlights: Optional[list[str]] = None
    worth_visit: Optional[list[str]] = None

    opening_hours: Optional[dict[str, OpeningWindow]] = None

    reviews: Any = None
    menu: Any = None

    food_images: Optional[list[str]] = None
    ambience_images: Optional[list[str]] = None
    cover_image: Optional[str] = None

    is_active: Optional[bool] = None

    latitude: Optional[float] = None
    longitude: Optional[float] = None

    booking_enabled: Optional[bool] = None
    avg_duration_minutes: Optional[int] = None
    max_bookings_per_slot: Optional[int] = None
    advance_booking_days: Optional[int] = None

    owner_user_id: Optional[UuidStr] = None

    @field_validator(
        "name",
        "slug",
        "cuisines",
        "facilities",
        "highlights",
        "worth_visit",
        "food_images",
        "ambience_images",
        "is_active",
        "booking_enabled",
        "avg_duration_minutes",
        "advance_booking_days",
        mode="before",
    )
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        # These columns may be omitted but never cleared.
        if value is None:
            raise ValueError("may not be null")
        return value

    @model_validator(mode="after")
    def _not_empty(self) -> "UpdateRestaurantRequest":
        if not self.model_fields_set:
            raise ValueError("At least one field is required")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# ---------------------------------------------------------------------------
# Home hero offers / spotlight
# ---------------------------------------------------------------------------


class CreateOfferRequest(BaseModel):
    title: Optional[str] = None
    type: Optional[str] = None
    media_url: Optional[str] = None
    priority: int = 0
    is_active: bool = True


class ReorderEntry(BaseModel):
    id: UuidStr
    order_index: int


class ReorderRequest(BaseModel):
    order: list[ReorderEntry] = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Corporates
# ---------------------------------------------------------------------------


class CreateCorporateRequest(BaseModel):
    name: NonEmptyStr

    phone: Optional[TrimmedStr] = None
    email: Optional[EmailStr] = None

    city: Optional[TrimmedStr] = None
    area: Optional[TrimmedStr] = None
    full_address: Optional[TrimmedStr] = None

    plan: Optional[TrimmedStr] = None
    subscription_id: Optional[UuidStr] = None

    subscription_start: Optional[date] = None
    subscription_expiry: Optional[date] = None

    seats: Optional[int] = Field(default=None, ge=0)

    owner_user_id: UuidStr
    owner_email: EmailStr


class EmployeeRecord(BaseModel):
    user_id: UuidStr
    name: NonEmptyStr
    email: EmailStr
    phone: NonEmptyStr
    department: Optional[TrimmedStr] = None
    designation: Optional[TrimmedStr] = None
    created_at: Optional[str] = None


class AddEmployeesRequest(BaseModel):
    employees: list[EmployeeRecord] = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Users / auth
# ---------------------------------------------------------------------------


class UserDetailsRequest(BaseModel):
    id: UuidStr
    full_name: NonEmptyStr
    phone: NonEmptyStr


class ExternalIdentity(BaseModel):
    id: UuidStr
    email: Optional[str] = None


class LoginOrRegisterRequest(BaseModel):
    supabase_user: ExternalIdentity


class CreateUserRequest(BaseModel):
    email: EmailStr
    password: NonEmptyStr
    role: Role
    full_name: Optional[str] = None
    phone: Optional[str] = None

    membership: Optional[str] = None
    membership_tier: Optional[str] = None
    membership_started: Optional[date] = None
    membership_expiry: Optional[date] = None

    corporate_code: Optional[str] = None
    corporate_code_status: Optional[str] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class PageInfo(BaseModel):
    limit: int
    offset: int
    total: int


class ListResponse(BaseModel):
    items: list[dict]
    page: PageInfo


class ItemResponse(BaseModel):
    item: dict


class DeleteResponse(BaseModel):
    ok: Literal[True] = True
    deleted: Literal["hard", "soft"]
    id: str


class AuthResponse(BaseModel):
    success: bool
    mode: Literal["registered", "logged_in"]
    token: str
    user: dict


class EmployeesResponse(BaseModel):
    ok: Literal[True] = True
    corporate_id: str
    employees: list[dict]
    seats: Optional[int] = None


class BulkCreateUsersResponse(BaseModel):
    created_count: int
    failed_count: int
    created: list[dict]
    failed: list[dict]
