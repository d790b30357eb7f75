"""
Database abstraction for SQL backends and an in-memory test implementation.
"""

from __future__ import annotations

import re
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Protocol

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    Index,
    String,
    create_engine,
    or_,
    select,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from regain.errors import DuplicateEmailError
from regain.geo import bounding_box, haversine_m
from regain.types import OrderStatus

ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")

SITE_UPDATE_FIELDS = frozenset(
    {"name", "phone", "is_active", "materials", "longitude", "latitude"}
)


def new_id() -> str:
    return uuid.uuid4().hex


def is_valid_id(value: str) -> bool:
    return bool(ID_PATTERN.match(value or ""))


class DbClient(Protocol):
    """Interface for database access."""

    def create_user(self, user: "UserRecord") -> "UserRecord":
        ...

    def get_user(self, email: str) -> Optional["UserRecord"]:
        ...

    def create_site(self, site: "SiteRecord") -> "SiteRecord":
        ...

    def get_site(self, site_id: str) -> Optional["SiteRecord"]:
        ...

    def list_sites(self, owner_email: Optional[str] = None) -> list["SiteRecord"]:
        ...

    def find_sites_near(
        self,
        longitude: float,
        latitude: float,
        max_distance_m: float,
        limit: int = 20,
    ) -> list[tuple["SiteRecord", float]]:
        ...

    def update_site(
        self, site_id: str, owner_email: str, changes: dict
    ) -> Optional["SiteRecord"]:
        ...

    def create_order(self, order: "OrderRecord") -> "OrderRecord":
        ...

    def get_order(
        self, order_id: str, participant_email: str
    ) -> Optional["OrderRecord"]:
        ...

    def list_orders(
        self,
        *,
        buyer_email: Optional[str] = None,
        seller_email: Optional[str] = None,
        status: Optional[OrderStatus] = None,
    ) -> list["OrderRecord"]:
        ...

    def update_order_status(
        self,
        order_id: str,
        seller_email: str,
        status: OrderStatus,
        *,
        cancel_reason: Optional[str] = None,
    ) -> Optional["OrderRecord"]:
        ...


@dataclass
class UserRecord:
    email: str
    password_hash: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    created_at: float = field(default_factory=lambda: time.time())

    def profile(self) -> dict:
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "phone": self.phone,
        }


@dataclass
class SiteRecord:
    name: str
    email: str
    phone: str
    longitude: float
    latitude: float
    is_active: bool = True
    materials: dict = field(default_factory=dict)
    site_id: str = field(default_factory=new_id)
    created_at: float = field(default_factory=lambda: time.time())


@dataclass
class OrderRecord:
    buyer_email: str
    seller_email: str
    site_id: str
    site_name: str
    materials: dict
    total_amount: float
    buyer_details: dict
    shipping_address: dict = field(default_factory=dict)
    status: OrderStatus = OrderStatus.PENDING
    cancel_reason: Optional[str] = None
    order_id: str = field(default_factory=new_id)
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())


def _check_site_changes(changes: dict) -> None:
    unknown = set(changes) - SITE_UPDATE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update site fields: {sorted(unknown)}")


def _nearest(
    sites: Iterable[SiteRecord],
    longitude: float,
    latitude: float,
    max_distance_m: float,
    limit: int,
) -> list[tuple[SiteRecord, float]]:
    matches = []
    for site in sites:
        distance = haversine_m(longitude, latitude, site.longitude, site.latitude)
        if distance <= max_distance_m:
            matches.append((site, distance))
    matches.sort(key=lambda item: item[1])
    return matches[:limit]


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.sites: Dict[str, SiteRecord] = {}
        self.orders: Dict[str, OrderRecord] = {}
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.users.clear()
        self.sites.clear()
        self.orders.clear()

    def create_user(self, user: UserRecord) -> UserRecord:
        with self._lock:
            if user.email in self.users:
                raise DuplicateEmailError()
            self.users[user.email] = user
        return user

    def get_user(self, email: str) -> Optional[UserRecord]:
        return self.users.get(email)

    def create_site(self, site: SiteRecord) -> SiteRecord:
        self.sites[site.site_id] = site
        return site

    def get_site(self, site_id: str) -> Optional[SiteRecord]:
        return self.sites.get(site_id)

    def list_sites(self, owner_email: Optional[str] = None) -> list[SiteRecord]:
        sites = sorted(self.sites.values(), key=lambda s: s.created_at)
        if owner_email is None:
            return sites
        return [site for site in sites if site.email == owner_email]

    def find_sites_near(
        self,
        longitude: float,
        latitude: float,
        max_distance_m: float,
        limit: int = 20,
    ) -> list[tuple[SiteRecord, float]]:
        return _nearest(
            self.sites.values(), longitude, latitude, max_distance_m, limit
        )

    def update_site(
        self, site_id: str, owner_email: str, changes: dict
    ) -> Optional[SiteRecord]:
        _check_site_changes(changes)
        site = self.sites.get(site_id)
        if not site or site.email != owner_email:
            return None
        for key, value in changes.items():
            setattr(site, key, value)
        return site

    def create_order(self, order: OrderRecord) -> OrderRecord:
        self.orders[order.order_id] = order
        return order

    def get_order(
        self, order_id: str, participant_email: str
    ) -> Optional[OrderRecord]:
        order = self.orders.get(order_id)
        if not order:
            return None
        if participant_email not in (order.buyer_email, order.seller_email):
            return None
        return order

    def list_orders(
        self,
        *,
        buyer_email: Optional[str] = None,
        seller_email: Optional[str] = None,
        status: Optional[OrderStatus] = None,
    ) -> list[OrderRecord]:
        orders = []
        for order in self.orders.values():
            if buyer_email is not None and order.buyer_email != buyer_email:
                continue
            if seller_email is not None and order.seller_email != seller_email:
                continue
            if status is not None and order.status != status:
                continue
            orders.append(order)
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders

    def update_order_status(
        self,
        order_id: str,
        seller_email: str,
        status: OrderStatus,
        *,
        cancel_reason: Optional[str] = None,
    ) -> Optional[OrderRecord]:
        order = self.orders.get(order_id)
        if not order or order.seller_email != seller_email:
            return None
        order.status = status
        if cancel_reason is not None:
            order.cancel_reason = cancel_reason
        order.updated_at = time.time()
        return order


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("database_url is required for SqlDbClient")
        engine_kwargs = {"future": True, "pool_pre_ping": True}
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            # One shared connection so every thread sees the same database.
            engine_kwargs.update(
                poolclass=StaticPool, connect_args={"check_same_thread": False}
            )
        else:
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        return UserRecord(
            email=row.email,
            password_hash=row.password_hash,
            first_name=row.first_name,
            last_name=row.last_name,
            phone=row.phone,
            created_at=row.created_at,
        )

    def _to_site_record(self, row: "SiteRow") -> SiteRecord:
        return SiteRecord(
            site_id=row.site_id,
            name=row.name,
            email=row.email,
            phone=row.phone,
            is_active=row.is_active,
            materials=dict(row.materials or {}),
            longitude=row.longitude,
            latitude=row.latitude,
            created_at=row.created_at,
        )

    def _to_order_record(self, row: "OrderRow") -> OrderRecord:
        return OrderRecord(
            order_id=row.order_id,
            buyer_email=row.buyer_email,
            seller_email=row.seller_email,
            site_id=row.site_id,
            site_name=row.site_name,
            materials=dict(row.materials or {}),
            total_amount=row.total_amount,
            status=OrderStatus(row.status),
            buyer_details=dict(row.buyer_details or {}),
            shipping_address=dict(row.shipping_address or {}),
            cancel_reason=row.cancel_reason,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def create_user(self, user: UserRecord) -> UserRecord:
        with self.Session() as session:
            session.add(
                UserRow(
                    email=user.email,
                    password_hash=user.password_hash,
                    first_name=user.first_name,
                    last_name=user.last_name,
                    phone=user.phone,
                    created_at=user.created_at,
                )
            )
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateEmailError() from exc
        return user

    def get_user(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, email)
            return self._to_user_record(row) if row else None

    def create_site(self, site: SiteRecord) -> SiteRecord:
        with self.Session() as session:
            row = SiteRow(
                site_id=site.site_id,
                name=site.name,
                email=site.email,
                phone=site.phone,
                is_active=site.is_active,
                materials=site.materials,
                longitude=site.longitude,
                latitude=site.latitude,
                created_at=site.created_at,
            )
            session.add(row)
            session.commit()
            return self._to_site_record(row)

    def get_site(self, site_id: str) -> Optional[SiteRecord]:
        with self.Session() as session:
            row = session.get(SiteRow, site_id)
            return self._to_site_record(row) if row else None

    def list_sites(self, owner_email: Optional[str] = None) -> list[SiteRecord]:
        with self.Session() as session:
            stmt = select(SiteRow).order_by(SiteRow.created_at.asc())
            if owner_email is not None:
                stmt = stmt.where(SiteRow.email == owner_email)
            rows = session.execute(stmt).scalars().all()
            return [self._to_site_record(row) for row in rows]

    def find_sites_near(
        self,
        longitude: float,
        latitude: float,
        max_distance_m: float,
        limit: int = 20,
    ) -> list[tuple[SiteRecord, float]]:
        min_lng, min_lat, max_lng, max_lat = bounding_box(
            longitude, latitude, max_distance_m
        )
        with self.Session() as session:
            stmt = select(SiteRow).where(SiteRow.latitude.between(min_lat, max_lat))
            if min_lng is not None:
                stmt = stmt.where(SiteRow.longitude.between(min_lng, max_lng))
            rows = session.execute(stmt).scalars().all()
            candidates = [self._to_site_record(row) for row in rows]
        return _nearest(candidates, longitude, latitude, max_distance_m, limit)

    def update_site(
        self, site_id: str, owner_email: str, changes: dict
    ) -> Optional[SiteRecord]:
        _check_site_changes(changes)
        with self.Session() as session:
            updated = (
                session.query(SiteRow)
                .filter(SiteRow.site_id == site_id, SiteRow.email == owner_email)
                .update(
                    {getattr(SiteRow, key): value for key, value in changes.items()},
                    synchronize_session=False,
                )
            )
            session.commit()
            if not updated:
                return None
            row = session.get(SiteRow, site_id)
            return self._to_site_record(row)

    def create_order(self, order: OrderRecord) -> OrderRecord:
        with self.Session() as session:
            row = OrderRow(
                order_id=order.order_id,
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
                created_at=order.created_at,
                updated_at=order.updated_at,
            )
            session.add(row)
            session.commit()
            return self._to_order_record(row)

    def get_order(
        self, order_id: str, participant_email: str
    ) -> Optional[OrderRecord]:
        with self.Session() as session:
            stmt = select(OrderRow).where(
                OrderRow.order_id == order_id,
                or_(
                    OrderRow.buyer_email == participant_email,
                    OrderRow.seller_email == participant_email,
                ),
            )
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_order_record(row) if row else None

    def list_orders(
        self,
        *,
        buyer_email: Optional[str] = None,
        seller_email: Optional[str] = None,
        status: Optional[OrderStatus] = None,
    ) -> list[OrderRecord]:
        with self.Session() as session:
            stmt = select(OrderRow).order_by(OrderRow.created_at.desc())
            if buyer_email is not None:
                stmt = stmt.where(OrderRow.buyer_email == buyer_email)
            if seller_email is not None:
                stmt = stmt.where(OrderRow.seller_email == seller_email)
            if status is not None:
                stmt = stmt.where(OrderRow.status == status.value)
            rows = session.execute(stmt).scalars().all()
            return [self._to_order_record(row) for row in rows]

    def update_order_status(
        self,
        order_id: str,
        seller_email: str,
        status: OrderStatus,
        *,
        cancel_reason: Optional[str] = None,
    ) -> Optional[OrderRecord]:
        values = {OrderRow.status: status.value, OrderRow.updated_at: time.time()}
        if cancel_reason is not None:
            values[OrderRow.cancel_reason] = cancel_reason
        with self.Session() as session:
            updated = (
                session.query(OrderRow)
                .filter(
                    OrderRow.order_id == order_id,
                    OrderRow.seller_email == seller_email,
                )
                .update(values, synchronize_session=False)
            )
            session.commit()
            if not updated:
                return None
            row = session.get(OrderRow, order_id)
            return self._to_order_record(row)


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    email = Column(String, primary_key=True)
    password_hash = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)


class SiteRow(Base):
    __tablename__ = "sites"
    __table_args__ = (Index("ix_sites_lat_lng", "latitude", "longitude"),)

    site_id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)
    phone = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    materials = Column(JSON, nullable=False)
    longitude = Column(Float, nullable=False)
    latitude = Column(Float, nullable=False)
    created_at = Column(Float, nullable=False)


class OrderRow(Base):
    __tablename__ = "orders"

    order_id = Column(String, primary_key=True)
    buyer_email = Column(String, nullable=False, index=True)
    seller_email = Column(String, nullable=False, index=True)
    site_id = Column(String, nullable=False, index=True)
    site_name = Column(String, nullable=False)
    materials = Column(JSON, nullable=False)
    total_amount = Column(Float, nullable=False)
    status = Column(String, nullable=False, index=True)
    buyer_details = Column(JSON, nullable=False)
    shipping_address = Column(JSON, nullable=False)
    cancel_reason = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)
