"""Administration routes: accounts, all links, statistics and snapshots."""

import json
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status

from linkcore.exceptions import InvalidFormatError
from linkcore.models import Actor

from .schemas import (
    CreateUserRequest,
    LinkResponse,
    UpdateUserRequest,
    UserResponse,
)
from .deps import get_services, require_admin, short_url_for
from ..services import Services

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/users", response_model=List[UserResponse])
async def list_users(
    actor: Actor = Depends(require_admin),
    services: Services = Depends(get_services),
):
    return [UserResponse.from_user(user) for user in services.identity.list_users()]


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: CreateUserRequest,
    actor: Actor = Depends(require_admin),
    services: Services = Depends(get_services),
):
    user = await services.identity.admin_create_user(
        body.email, body.password, body.name, body.role, actor
    )
    return UserResponse.from_user(user)


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    body: UpdateUserRequest,
    actor: Actor = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """Replace name, email and role; the password changes only when given."""
    user = await services.identity.update_profile(
        user_id,
        name=body.name,
        email=body.email,
        role=body.role,
        actor=actor,
        credential=body.password or None,
    )
    return UserResponse.from_user(user)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    actor: Actor = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """Delete an account, its links and its sessions."""
    await services.identity.delete_user(user_id, actor)
    services.sessions.revoke_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/links", response_model=List[LinkResponse])
async def list_all_links(
    request: Request,
    q: Optional[str] = Query(None, description="Filter by slug or URL substring"),
    actor: Actor = Depends(require_admin),
    services: Services = Depends(get_services),
):
    now = services.store.now()
    links = services.links.search_links(q) if q else services.links.list_all()
    return [LinkResponse.from_link(link, short_url_for(request, link.slug), now) for link in links]


@router.get("/export")
async def export_snapshot(
    actor: Actor = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """Download every user (credentials included) and link."""
    snapshot = services.bulk.export_snapshot()
    return Response(
        content=json.dumps(snapshot, indent=2),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="linkcore-backup.json"'},
    )


@router.post("/import", status_code=status.HTTP_204_NO_CONTENT)
async def import_snapshot(
    request: Request,
    actor: Actor = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """Replace the whole registry with an exported snapshot."""
    try:
        data = json.loads(await request.body())
    except ValueError as e:
        raise InvalidFormatError(f"Snapshot is not valid JSON: {e}") from e
    await services.bulk.import_snapshot(data)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
