"""
Site listing, registration, owner management and proximity search.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from regain.config import Settings, get_settings
from regain.db import DbClient, SiteRecord, is_valid_id
from regain.dependencies import get_db_client
from regain.errors import InvalidRequestError, NotFoundError
from regain.routes.base import EnvelopeRoute
from regain.schemas import (
    NearbySitesRequest,
    SiteCreate,
    SiteListResponse,
    SiteOut,
    SiteRegistration,
    SiteResponse,
    SiteUpdate,
)
from regain.security import get_current_email

logger = logging.getLogger(__name__)

router = APIRouter(route_class=EnvelopeRoute, tags=["sites"])


def _build_site(payload: SiteCreate, owner_email: str) -> SiteRecord:
    return SiteRecord(
        name=payload.name,
        email=owner_email.lower(),
        phone=payload.phone,
        is_active=payload.is_active,
        materials={
            name: material.model_dump() for name, material in payload.materials.items()
        },
        longitude=payload.location.longitude,
        latitude=payload.location.latitude,
    )


@router.get("/getSites", response_model=SiteListResponse)
def get_sites(db: DbClient = Depends(get_db_client)):
    sites = db.list_sites()
    return SiteListResponse(
        status="success", data=[SiteOut.from_record(site) for site in sites]
    )


@router.post("/getNearestSites", response_model=SiteListResponse)
def get_nearest_sites(
    payload: NearbySitesRequest,
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    """
    Sites within ``radius`` km of ``userCords`` (``[lng, lat]``), closest first.
    """
    radius_km = payload.radius or settings.default_search_radius_km
    if radius_km > settings.max_search_radius_km:
        raise InvalidRequestError(
            f"radius must be at most {settings.max_search_radius_km:g} km"
        )
    longitude, latitude = payload.user_cords
    matches = db.find_sites_near(
        longitude,
        latitude,
        max_distance_m=radius_km * 1000,
        limit=settings.nearby_limit,
    )
    return SiteListResponse(
        status="success",
        data=[SiteOut.from_record(site, distance) for site, distance in matches],
    )


@router.post("/registerSite", response_model=SiteResponse)
def register_site(payload: SiteRegistration, db: DbClient = Depends(get_db_client)):
    site = db.create_site(_build_site(payload, payload.email))
    logger.info("Registered site %s for %s", site.site_id, site.email)
    return SiteResponse(
        status="success",
        message="Site registered successfully",
        data=SiteOut.from_record(site),
    )


@router.get("/getMySites", response_model=SiteListResponse)
def get_my_sites(
    email: str = Depends(get_current_email),
    db: DbClient = Depends(get_db_client),
):
    sites = db.list_sites(owner_email=email)
    return SiteListResponse(
        status="success", data=[SiteOut.from_record(site) for site in sites]
    )


@router.post("/addMySite", response_model=SiteResponse)
def add_my_site(
    payload: SiteCreate,
    email: str = Depends(get_current_email),
    db: DbClient = Depends(get_db_client),
):
    site = db.create_site(_build_site(payload, email))
    logger.info("User %s added site %s", email, site.site_id)
    return SiteResponse(
        status="success", message="Site added successfully", data=SiteOut.from_record(site)
    )


@router.post("/updateMySite", response_model=SiteResponse)
def update_my_site(
    payload: SiteUpdate,
    email: str = Depends(get_current_email),
    db: DbClient = Depends(get_db_client),
):
    if not is_valid_id(payload.site_id):
        raise InvalidRequestError("Invalid ID")

    changes = {}
    if payload.name is not None:
        changes["name"] = payload.name
    if payload.phone is not None:
        changes["phone"] = payload.phone
    if payload.is_active is not None:
        changes["is_active"] = payload.is_active
    if payload.materials is not None:
        changes["materials"] = {
            name: material.model_dump() for name, material in payload.materials.items()
        }
    if payload.location is not None:
        changes["longitude"] = payload.location.longitude
        changes["latitude"] = payload.location.latitude
    if not changes:
        raise InvalidRequestError("Nothing to update")

    site = db.update_site(payload.site_id, email, changes)
    if not site:
        raise NotFoundError("Invalid ID")
    logger.info("User %s updated site %s: %s", email, site.site_id, sorted(changes))
    return SiteResponse(
        status="success", message="Site updated successfully", data=SiteOut.from_record(site)
    )
