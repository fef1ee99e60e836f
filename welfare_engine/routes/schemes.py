"""
Administrative API routes for the scheme catalogue
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from ..dependencies import get_catalogue
from ..models.scheme import (
    FlagRequest,
    ReviewFlag,
    SchemeRecord,
    SchemeWriteRequest,
    StatusChangeRequest
)
from ..services.catalogue_service import SchemeCatalogue

router = APIRouter(prefix="/schemes", tags=["schemes"])


@router.get("", response_model=List[SchemeRecord])
async def list_active_schemes(
    category: Optional[str] = Query(None, description="Filter by category tag"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of schemes to return"),
    offset: int = Query(0, ge=0, description="Number of schemes to skip"),
    catalogue: SchemeCatalogue = Depends(get_catalogue)
):
    """
    Get active schemes ordered by category then name
    """
    schemes = await catalogue.list_active(category=category)
    return schemes[offset:offset + limit]


@router.get("/{scheme_id}", response_model=SchemeRecord)
async def get_scheme(
    scheme_id: str,
    include_inactive: bool = Query(False, description="Also return discontinued schemes"),
    catalogue: SchemeCatalogue = Depends(get_catalogue)
):
    """
    Get the current version of a scheme
    """
    return await catalogue.get_current(scheme_id, include_inactive=include_inactive)


@router.get("/{scheme_id}/versions", response_model=List[SchemeRecord])
async def list_scheme_versions(scheme_id: str, catalogue: SchemeCatalogue = Depends(get_catalogue)):
    """
    Get every version of a scheme, oldest first
    """
    return await catalogue.list_versions(scheme_id)


@router.get("/{scheme_id}/versions/{version}", response_model=SchemeRecord)
async def get_scheme_version(
    scheme_id: str,
    version: int,
    catalogue: SchemeCatalogue = Depends(get_catalogue)
):
    """
    Get one historical version of a scheme
    """
    return await catalogue.get_version(scheme_id, version)


@router.put("/{scheme_id}", response_model=SchemeRecord)
async def upsert_scheme(
    scheme_id: str,
    request: SchemeWriteRequest,
    catalogue: SchemeCatalogue = Depends(get_catalogue)
):
    """
    Write a new version of a scheme
    """
    return await catalogue.upsert(scheme_id, request.overrides(), base_version=request.base_version)


@router.post("/{scheme_id}/status", response_model=SchemeRecord)
async def change_scheme_status(
    scheme_id: str,
    request: StatusChangeRequest,
    catalogue: SchemeCatalogue = Depends(get_catalogue)
):
    """
    Suspend, reinstate or discontinue a scheme
    """
    return await catalogue.set_status(scheme_id, request.status)


@router.post("/{scheme_id}/flags", response_model=ReviewFlag, status_code=201)
async def flag_scheme(
    scheme_id: str,
    request: FlagRequest,
    catalogue: SchemeCatalogue = Depends(get_catalogue)
):
    """
    Flag a scheme for administrative review
    """
    return await catalogue.flag_inconsistency(scheme_id, request.description)


@router.get("/{scheme_id}/flags", response_model=List[ReviewFlag])
async def list_scheme_flags(
    scheme_id: str,
    open_only: bool = Query(False, description="Only unresolved flags"),
    catalogue: SchemeCatalogue = Depends(get_catalogue)
):
    """
    Get review flags raised on a scheme
    """
    return await catalogue.list_flags(scheme_id, open_only=open_only)
