"""
Order placement and fulfilment tracking.

Buyers place orders against a site; the seller (the site's owner) moves the
order through ``OrderStatus``. Every read and write is scoped to the
authenticated caller.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from regain.db import DbClient, OrderRecord, UserRecord, is_valid_id
from regain.dependencies import get_db_client
from regain.errors import InvalidRequestError, NotFoundError
from regain.routes.base import EnvelopeRoute
from regain.schemas import (
    OrderActionRequest,
    OrderListResponse,
    OrderOut,
    OrderResponse,
    PlaceOrderRequest,
    RejectOrderRequest,
    UpdateOrderStatusRequest,
)
from regain.security import get_current_email, get_current_user
from regain.types import OrderStatus

logger = logging.getLogger(__name__)

router = APIRouter(route_class=EnvelopeRoute, tags=["orders"])


def _order_list(orders: list[OrderRecord]) -> OrderListResponse:
    return OrderListResponse(
        status="success", data=[OrderOut.from_record(order) for order in orders]
    )


def _set_status(
    db: DbClient,
    order_id: str,
    seller_email: str,
    status: OrderStatus,
    cancel_reason: Optional[str] = None,
) -> OrderResponse:
    if not is_valid_id(order_id):
        raise InvalidRequestError("Invalid order ID")
    order = db.update_order_status(
        order_id, seller_email, status, cancel_reason=cancel_reason
    )
    if not order:
        raise NotFoundError("Order not found or unauthorized")
    logger.info("Order %s marked %s by %s", order_id, status.value, seller_email)
    return OrderResponse(
        status="success",
        message=f"Order {status.value} successfully",
        data=OrderOut.from_record(order),
    )


@router.post("/placeOrder", response_model=OrderResponse)
def place_order(
    payload: PlaceOrderRequest,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    """
    Create a pending order, pricing each material from the site's current listing.
    """
    if not is_valid_id(payload.site_id):
        raise InvalidRequestError("Invalid site ID")
    if not payload.materials:
        raise InvalidRequestError("At least one material is required")

    site = db.get_site(payload.site_id)
    if not site:
        raise NotFoundError("Site not found")
    if not site.is_active:
        raise InvalidRequestError("Site is not accepting orders")
    if site.email == user.email:
        raise InvalidRequestError("You cannot order from your own site")

    materials = {}
    total = 0.0
    for name, item in payload.materials.items():
        listed = site.materials.get(name)
        if listed is None:
            raise InvalidRequestError(f"Material '{name}' is not available at this site")
        if item.quantity > listed["stock"]:
            raise InvalidRequestError(
                f"Only {listed['stock']} units of '{name}' are in stock"
            )
        price = float(listed["price"])
        materials[name] = {"quantity": item.quantity, "price": price}
        total += item.quantity * price

    order = db.create_order(
        OrderRecord(
            buyer_email=user.email,
            seller_email=site.email,
            site_id=site.site_id,
            site_name=site.name,
            materials=materials,
            total_amount=round(total, 2),
            buyer_details=user.profile(),
            shipping_address=payload.shipping_address.model_dump(mode="json"),
        )
    )
    logger.info(
        "Order %s placed by %s on site %s (total %.2f)",
        order.order_id,
        user.email,
        site.site_id,
        order.total_amount,
    )
    return OrderResponse(
        status="success",
        message="Order created successfully",
        data=OrderOut.from_record(order),
    )


@router.get("/myOrders", response_model=OrderListResponse)
def my_orders(
    email: str = Depends(get_current_email),
    db: DbClient = Depends(get_db_client),
):
    return _order_list(db.list_orders(buyer_email=email))


@router.get("/sellerOrders", response_model=OrderListResponse)
def seller_orders(
    email: str = Depends(get_current_email),
    db: DbClient = Depends(get_db_client),
):
    return _order_list(db.list_orders(seller_email=email))


@router.get("/sellerPendingOrders", response_model=OrderListResponse)
def seller_pending_orders(
    email: str = Depends(get_current_email),
    db: DbClient = Depends(get_db_client),
):
    return _order_list(
        db.list_orders(seller_email=email, status=OrderStatus.PENDING)
    )


@router.post("/updateOrderStatus", response_model=OrderResponse)
def update_order_status(
    payload: UpdateOrderStatusRequest,
    email: str = Depends(get_current_email),
    db: DbClient = Depends(get_db_client),
):
    try:
        status = OrderStatus(payload.status)
    except ValueError:
        raise InvalidRequestError("Invalid status") from None
    if status not in OrderStatus.settable():
        raise InvalidRequestError("Invalid status")
    return _set_status(db, payload.order_id, email, status)


@router.post("/acceptOrder", response_model=OrderResponse)
def accept_order(
    payload: OrderActionRequest,
    email: str = Depends(get_current_email),
    db: DbClient = Depends(get_db_client),
):
    return _set_status(db, payload.order_id, email, OrderStatus.APPROVED)


@router.post("/rejectOrder", response_model=OrderResponse)
def reject_order(
    payload: RejectOrderRequest,
    email: str = Depends(get_current_email),
    db: DbClient = Depends(get_db_client),
):
    return _set_status(
        db,
        payload.order_id,
        email,
        OrderStatus.CANCELLED,
        cancel_reason=payload.reason,
    )


@router.get("/order/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: str,
    email: str = Depends(get_current_email),
    db: DbClient = Depends(get_db_client),
):
    if not is_valid_id(order_id):
        raise InvalidRequestError("Invalid order ID")
    order = db.get_order(order_id, email)
    if not order:
        raise NotFoundError("Order not found or unauthorized")
    return OrderResponse(status="success", data=OrderOut.from_record(order))
