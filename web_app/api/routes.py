"""API routes: sessions, links and health."""

from datetime import date, datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials

from linkcore.bulk import parse_bulk_text
from linkcore.models import Actor, ShortLink

from .schemas import (
    BulkResponse,
    CreateLinkRequest,
    DailyStatResponse,
    GuestLinkResponse,
    HealthResponse,
    LinkResponse,
    LoginRequest,
    RecoverRequest,
    RegisterRequest,
    SessionResponse,
    StatisticsResponse,
    UpdateExpiryRequest,
    UpdateLinkRequest,
    UserResponse,
)
from .deps import (
    bearer_scheme,
    can_modify_link,
    get_current_actor,
    get_guest_session,
    get_optional_actor,
    get_services,
    require_admin,
    short_url_for,
)
from ..services import Services

router = APIRouter()


def _link_response(request: Request, services: Services, link: ShortLink) -> LinkResponse:
    return LinkResponse.from_link(link, short_url_for(request, link.slug), services.store.now())


def _as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _get_accessible_link(
    link_id: str,
    actor: Optional[Actor],
    guest_session: Optional[str],
    services: Services,
) -> ShortLink:
    link = services.links.get_by_id(link_id)
    if link is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Link '{link_id}' not found")
    if not can_modify_link(link, actor, guest_session, services):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to access this link")
    return link


# Sessions

@router.post("/auth/register", response_model=SessionResponse, status_code=status.HTTP_201_CREATED, tags=["Auth"])
async def register(body: RegisterRequest, services: Services = Depends(get_services)):
    """Create a USER account and sign it in."""
    user = await services.identity.register(body.email, body.password, body.name)
    return SessionResponse(token=services.sessions.issue(user.id), user=UserResponse.from_user(user))


@router.post("/auth/login", response_model=SessionResponse, tags=["Auth"])
async def login(body: LoginRequest, services: Services = Depends(get_services)):
    user = await services.identity.authenticate(body.email, body.password)
    return SessionResponse(token=services.sessions.issue(user.id), user=UserResponse.from_user(user))


@router.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT, tags=["Auth"])
async def logout(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: Services = Depends(get_services),
):
    if credentials is not None:
        services.sessions.revoke(credentials.credentials)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/auth/recover", status_code=status.HTTP_202_ACCEPTED, tags=["Auth"])
async def recover_password(body: RecoverRequest, services: Services = Depends(get_services)):
    await services.identity.recover_password(body.email)
    return {"detail": "Recovery instructions sent"}


@router.get("/auth/me", response_model=UserResponse, tags=["Auth"])
async def me(actor: Actor = Depends(get_current_actor), services: Services = Depends(get_services)):
    return UserResponse.from_user(services.identity.get_user(actor.id))


# Links

@router.post(
    "/links",
    response_model=GuestLinkResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Links"],
    summary="Create short link",
    description=(
        "Signed-in callers create member links. Anonymous callers create guest links "
        "that expire after 24 hours; one per X-Guest-Session."
    ),
)
async def create_link(
    request: Request,
    body: CreateLinkRequest,
    actor: Optional[Actor] = Depends(get_optional_actor),
    guest_session: Optional[str] = Depends(get_guest_session),
    services: Services = Depends(get_services),
):
    if actor is not None:
        link = await services.links.create_link(
            body.url,
            slug=body.slug,
            creator_id=actor.id,
            expires_at=_as_utc(body.expires_at),
        )
        return GuestLinkResponse(**_link_response(request, services, link).model_dump())

    session = guest_session or services.guests.new_session_token()
    link = await services.guests.create(
        session,
        body.url,
        slug=body.slug,
        replace_existing=body.replace_existing,
    )
    base = _link_response(request, services, link)
    return GuestLinkResponse(**base.model_dump(), guest_session=session)


@router.get("/links", response_model=List[LinkResponse], tags=["Links"])
async def list_links(
    request: Request,
    q: Optional[str] = Query(None, description="Filter by slug or URL substring"),
    actor: Optional[Actor] = Depends(get_optional_actor),
    guest_session: Optional[str] = Depends(get_guest_session),
    services: Services = Depends(get_services),
):
    """The caller's links, newest first (a guest sees at most its one link)."""
    if actor is not None:
        links = services.links.search_links(q or "", creator_id=actor.id)
    elif guest_session:
        current = services.guests.current_link(guest_session)
        links = [current] if current else []
    else:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return [_link_response(request, services, link) for link in links]


@router.post("/links/bulk", response_model=BulkResponse, tags=["Links"])
async def bulk_create(
    request: Request,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    """Create links from a ``url,slug`` text body, one per line."""
    text = (await request.body()).decode("utf-8", errors="replace")
    items = parse_bulk_text(text)
    result = await services.bulk.bulk_create(items, actor.id)
    return BulkResponse(**result.to_dict())


@router.get("/links/{link_id}", response_model=LinkResponse, tags=["Links"])
async def get_link(
    request: Request,
    link_id: str,
    actor: Optional[Actor] = Depends(get_optional_actor),
    guest_session: Optional[str] = Depends(get_guest_session),
    services: Services = Depends(get_services),
):
    link = _get_accessible_link(link_id, actor, guest_session, services)
    return _link_response(request, services, link)


@router.get("/links/{link_id}/history", response_model=List[DailyStatResponse], tags=["Links"])
async def get_link_history(
    link_id: str,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    actor: Optional[Actor] = Depends(get_optional_actor),
    guest_session: Optional[str] = Depends(get_guest_session),
    services: Services = Depends(get_services),
):
    """Daily click counts within an inclusive date range."""
    _get_accessible_link(link_id, actor, guest_session, services)
    history = services.clicks.get_history(link_id, start=start, end=end)
    return [DailyStatResponse(date=stat.date, count=stat.count) for stat in history]


@router.put("/links/{link_id}", response_model=LinkResponse, tags=["Links"])
async def update_link(
    request: Request,
    link_id: str,
    body: UpdateLinkRequest,
    actor: Optional[Actor] = Depends(get_optional_actor),
    guest_session: Optional[str] = Depends(get_guest_session),
    services: Services = Depends(get_services),
):
    _get_accessible_link(link_id, actor, guest_session, services)
    link = await services.links.update_link(link_id, body.slug, body.url)
    return _link_response(request, services, link)


@router.patch("/links/{link_id}/expiry", response_model=LinkResponse, tags=["Links"])
async def update_expiry(
    request: Request,
    link_id: str,
    body: UpdateExpiryRequest,
    actor: Optional[Actor] = Depends(get_optional_actor),
    guest_session: Optional[str] = Depends(get_guest_session),
    services: Services = Depends(get_services),
):
    _get_accessible_link(link_id, actor, guest_session, services)
    link = await services.links.update_expiry(link_id, _as_utc(body.expires_at))
    return _link_response(request, services, link)


@router.delete("/links/{link_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Links"])
async def delete_link(
    link_id: str,
    actor: Optional[Actor] = Depends(get_optional_actor),
    guest_session: Optional[str] = Depends(get_guest_session),
    services: Services = Depends(get_services),
):
    """Delete a link. Deleting an unknown id succeeds."""
    link = services.links.get_by_id(link_id)
    if link is not None:
        if not can_modify_link(link, actor, guest_session, services):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to delete this link")
        if actor is None and services.guests.owns(guest_session, link_id):
            await services.guests.discard(guest_session)
        else:
            await services.links.delete_link(link_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(services: Services = Depends(get_services)):
    """Health check endpoint for load balancers and monitoring."""
    healthy = await services.store.health_check()
    return HealthResponse(
        status="healthy" if healthy else "unhealthy",
        storage="healthy" if healthy else "unhealthy",
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/stats", response_model=StatisticsResponse, tags=["Admin"])
async def get_statistics(
    actor: Actor = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """Registry-wide totals."""
    stats = services.links.get_statistics()
    return StatisticsResponse(**stats, storage_backend=services.store.storage.name)
