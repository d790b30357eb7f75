"""
Pydantic schemas for the ReGain API.

Request and response bodies use the camelCase field names the web client
sends and reads; record ids are exposed as ``_id``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    field_validator,
)

from regain.db import OrderRecord, SiteRecord, UserRecord
from regain.geo import validate_point


# Trimmed before the length check so blank input is rejected.
PersonName = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)
]
SiteName = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)
]
Phone = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=32)
]


def _timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GeoPoint(ApiModel):
    """GeoJSON point; coordinates are ``[longitude, latitude]``."""

    type: Literal["Point"] = "Point"
    coordinates: tuple[float, float]

    @field_validator("coordinates")
    @classmethod
    def check_range(cls, value: tuple[float, float]) -> tuple[float, float]:
        validate_point(*value)
        return value

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]


class MaterialStock(ApiModel):
    stock: int = Field(..., ge=0)
    price: float = Field(..., ge=0)


def _clean_material_names(value: Optional[dict]) -> Optional[dict]:
    if value is None:
        return None
    cleaned = {}
    for name, item in value.items():
        key = name.strip()
        if not key:
            raise ValueError("material names must not be empty")
        if key in cleaned:
            raise ValueError(f"duplicate material name '{key}'")
        cleaned[key] = item
    return cleaned


# Auth


class RegisterRequest(ApiModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: PersonName = Field(..., alias="firstName")
    last_name: PersonName = Field(..., alias="lastName")
    phone: Optional[str] = Field(default=None, max_length=32)


class LoginRequest(ApiModel):
    email: EmailStr
    password: str


class UserOut(ApiModel):
    email: str
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    phone: Optional[str] = None

    @classmethod
    def from_record(cls, user: UserRecord) -> "UserOut":
        return cls(
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            phone=user.phone,
        )


# Sites


class SiteCreate(ApiModel):
    name: SiteName
    phone: Phone
    is_active: bool = Field(default=True, alias="isActive")
    materials: dict[str, MaterialStock] = Field(default_factory=dict)
    location: GeoPoint

    @field_validator("materials")
    @classmethod
    def clean_materials(cls, value):
        return _clean_material_names(value)


class SiteRegistration(SiteCreate):
    email: EmailStr


class SiteUpdate(ApiModel):
    site_id: str = Field(..., alias="siteId")
    name: Optional[SiteName] = None
    phone: Optional[Phone] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")
    materials: Optional[dict[str, MaterialStock]] = None
    location: Optional[GeoPoint] = None

    @field_validator("materials")
    @classmethod
    def clean_materials(cls, value):
        return _clean_material_names(value)


class NearbySitesRequest(ApiModel):
    user_cords: tuple[float, float] = Field(..., alias="userCords")
    radius: Optional[float] = Field(default=None, gt=0, description="km")

    @field_validator("user_cords")
    @classmethod
    def check_range(cls, value: tuple[float, float]) -> tuple[float, float]:
        validate_point(*value)
        return value


class SiteOut(ApiModel):
    id: str = Field(..., alias="_id")
    name: str
    email: str
    phone: str
    is_active: bool = Field(..., alias="isActive")
    materials: dict[str, MaterialStock]
    location: GeoPoint
    created_at: datetime = Field(..., alias="createdAt")
    distance_meters: Optional[float] = Field(default=None, alias="distanceMeters")

    @classmethod
    def from_record(
        cls, site: SiteRecord, distance_meters: Optional[float] = None
    ) -> "SiteOut":
        return cls(
            id=site.site_id,
            name=site.name,
            email=site.email,
            phone=site.phone,
            is_active=site.is_active,
            materials=site.materials,
            location=GeoPoint(coordinates=(site.longitude, site.latitude)),
            created_at=_timestamp(site.created_at),
            distance_meters=(
                round(distance_meters, 1) if distance_meters is not None else None
            ),
        )


# Orders


class OrderMaterialRequest(ApiModel):
    quantity: int = Field(..., gt=0)


class ShippingAddress(ApiModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    coordinates: Optional[tuple[float, float]] = None

    @field_validator("coordinates")
    @classmethod
    def check_range(
        cls, value: Optional[tuple[float, float]]
    ) -> Optional[tuple[float, float]]:
        if value is not None:
            validate_point(*value)
        return value


class PlaceOrderRequest(ApiModel):
    site_id: str = Field(..., alias="siteId")
    materials: dict[str, OrderMaterialRequest]
    shipping_address: ShippingAddress = Field(
        default_factory=ShippingAddress, alias="shippingAddress"
    )

    @field_validator("materials")
    @classmethod
    def clean_materials(cls, value):
        return _clean_material_names(value)


class UpdateOrderStatusRequest(ApiModel):
    order_id: str = Field(..., alias="orderId", min_length=1)
    status: str = Field(..., min_length=1)


class OrderActionRequest(ApiModel):
    order_id: str = Field(..., alias="orderId", min_length=1)


class RejectOrderRequest(OrderActionRequest):
    reason: Optional[str] = Field(default=None, max_length=500)


class OrderMaterial(ApiModel):
    quantity: int
    price: float


class BuyerDetails(ApiModel):
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    phone: Optional[str] = None


class OrderOut(ApiModel):
    id: str = Field(..., alias="_id")
    buyer_email: str = Field(..., alias="buyerEmail")
    seller_email: str = Field(..., alias="sellerEmail")
    site_id: str = Field(..., alias="siteId")
    site_name: str = Field(..., alias="siteName")
    materials: dict[str, OrderMaterial]
    total_amount: float = Field(..., alias="totalAmount")
    status: str
    buyer_details: BuyerDetails = Field(..., alias="buyerDetails")
    shipping_address: ShippingAddress = Field(..., alias="shippingAddress")
    cancel_reason: Optional[str] = Field(default=None, alias="cancelReason")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @classmethod
    def from_record(cls, order: OrderRecord) -> "OrderOut":
        return cls(
            id=order.order_id,
            buyer_email=order.buyer_email,
            seller_email=order.seller_email,
            site_id=order.site_id,
            site_name=order.site_name,
            materials=order.materials,
            total_amount=order.total_amount,
            status=order.status.value,
            buyer_details=order.buyer_details,
            shipping_address=order.shipping_address,
            cancel_reason=order.cancel_reason,
            created_at=_timestamp(order.created_at),
            updated_at=_timestamp(order.updated_at),
        )


# Envelopes


class StatusResponse(ApiModel):
    status: Literal["success", "failed", "error"]
    message: Optional[str] = None


class UserResponse(StatusResponse):
    data: UserOut


class LoginResponse(UserResponse):
    token: str


class SiteResponse(StatusResponse):
    data: SiteOut


class SiteListResponse(StatusResponse):
    data: list[SiteOut]


class OrderResponse(StatusResponse):
    data: OrderOut


class OrderListResponse(StatusResponse):
    data: list[OrderOut]
