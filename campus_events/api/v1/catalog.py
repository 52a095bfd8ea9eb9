"""
Venue and resource catalogue endpoints.
"""

from fastapi import APIRouter, Depends, status
from typing import List

from campus_events.api.dependencies import get_catalog_service, get_current_caller, require_admin
from campus_events.schemas.catalog import ResourceCreate, ResourceResponse, VenueCreate, VenueResponse
from campus_events.services.catalog_service import CatalogService
from campus_events.services.event_service import Caller

router = APIRouter(tags=["catalog"])


@router.get("/venues", response_model=List[VenueResponse])
async def list_venues(
    caller: Caller = Depends(get_current_caller),
    catalog: CatalogService = Depends(get_catalog_service)
):
    return [VenueResponse.model_validate(venue) for venue in await catalog.list_venues()]


@router.post("/venues", response_model=VenueResponse, status_code=status.HTTP_201_CREATED)
async def create_venue(
    venue_data: VenueCreate,
    admin: Caller = Depends(require_admin),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Register a venue (Admin only)."""
    venue = await catalog.create_venue(venue_data, admin.role)
    return VenueResponse.model_validate(venue)


@router.get("/resources", response_model=List[ResourceResponse])
async def list_resources(
    caller: Caller = Depends(get_current_caller),
    catalog: CatalogService = Depends(get_catalog_service)
):
    return [ResourceResponse.model_validate(resource) for resource in await catalog.list_resources()]


@router.post("/resources", response_model=ResourceResponse, status_code=status.HTTP_201_CREATED)
async def create_resource(
    resource_data: ResourceCreate,
    admin: Caller = Depends(require_admin),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Register a pooled resource (Admin only)."""
    resource = await catalog.create_resource(resource_data, admin.role)
    return ResourceResponse.model_validate(resource)
