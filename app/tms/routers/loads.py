"""
Router for load management endpoints.

Handles:
- Listing and searching a user's loads
- Manual creation, updates (status, rate edits) and deletion

All operations are scoped to the authenticated user.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..deps import get_current_user, get_load_store
from ..models import (
    LoadListResponse,
    LoadRecord,
    LoadStatus,
    StoredLoadResponse,
    UpdateLoadRequest,
)
from ..services.identity import AuthenticatedUser
from ..services.storage import LoadStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/loads", tags=["loads"])


def _parse_load_id(load_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(load_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid load ID format",
        )


def _not_found(load_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Load {load_id} not found",
    )


@router.get("", response_model=LoadListResponse)
async def list_loads(
    status_filter: LoadStatus | None = Query(default=None, alias="status"),
    search: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: AuthenticatedUser = Depends(get_current_user),
    store: LoadStore = Depends(get_load_store),
) -> LoadListResponse:
    """
    List the caller's loads, newest first.

    Args:
        status_filter: Only loads in this status.
        search: Substring match on load number or broker name.
        limit: Maximum number of loads to return.
        offset: Number of loads to skip.
    """
    loads, total = store.list_loads(
        user.id,
        status=status_filter,
        search=search,
        limit=limit,
        offset=offset,
    )
    return LoadListResponse(loads=loads, total=total, limit=limit, offset=offset)


@router.get("/{load_id}", response_model=StoredLoadResponse)
async def get_load(
    load_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    store: LoadStore = Depends(get_load_store),
) -> StoredLoadResponse:
    """Get a single load."""
    load = store.get(user.id, _parse_load_id(load_id))
    if load is None:
        raise _not_found(load_id)
    return load


@router.post("", response_model=StoredLoadResponse, status_code=status.HTTP_201_CREATED)
async def create_load(
    load: LoadRecord,
    user: AuthenticatedUser = Depends(get_current_user),
    store: LoadStore = Depends(get_load_store),
) -> StoredLoadResponse:
    """Create a load from manually entered data."""
    return store.create(user.id, load)


@router.put("/{load_id}", response_model=StoredLoadResponse)
async def update_load(
    load_id: str,
    changes: UpdateLoadRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    store: LoadStore = Depends(get_load_store),
) -> StoredLoadResponse:
    """
    Update a load (human corrections, status transitions).

    Only the fields present in the body change. Rate per mile is
    recomputed from the updated miles and booked rate.
    """
    updated = store.update(user.id, _parse_load_id(load_id), changes)
    if updated is None:
        raise _not_found(load_id)
    return updated


@router.delete("/{load_id}")
async def delete_load(
    load_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    store: LoadStore = Depends(get_load_store),
) -> dict[str, str]:
    """Delete a load."""
    if not store.delete(user.id, _parse_load_id(load_id)):
        raise _not_found(load_id)
    logger.info("Deleted load %s for user %s", load_id, user.id)
    return {"message": "Load deleted successfully"}
