"""Request dependencies: services and the calling actor."""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from linkcore.models import Actor, ShortLink, UserRole
from linkcore.common.urls import build_short_url, public_base_url

from ..services import Services

bearer_scheme = HTTPBearer(auto_error=False)


def get_services(request: Request) -> Services:
    services = request.app.state.services
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting",
        )
    return services


async def get_optional_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: Services = Depends(get_services),
) -> Optional[Actor]:
    """Resolve the bearer token to an actor whose role comes from the registry."""
    if credentials is None:
        return None
    user_id = services.sessions.resolve(credentials.credentials)
    user = services.identity.get_user(user_id) if user_id else None
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Actor.from_user(user)


async def get_current_actor(actor: Optional[Actor] = Depends(get_optional_actor)) -> Actor:
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if actor.role not in (UserRole.ADMIN, UserRole.OWNER):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return actor


def get_guest_session(x_guest_session: Optional[str] = Header(None)) -> Optional[str]:
    return x_guest_session


def can_modify_link(
    link: ShortLink,
    actor: Optional[Actor],
    guest_session: Optional[str],
    services: Services,
) -> bool:
    """Creator, ADMIN/OWNER, or the guest session holding the link."""
    if actor is not None:
        if actor.role in (UserRole.ADMIN, UserRole.OWNER):
            return True
        if link.creator_id == actor.id:
            return True
    return link.is_guest and services.guests.owns(guest_session, link.id)


def short_url_for(request: Request, slug: str) -> str:
    config = request.app.state.config
    base_url = public_base_url(
        headers=dict(request.headers),
        fallback_base_url=config.base_url,
        request_scheme=request.url.scheme,
        request_host=request.headers.get("host"),
    )
    return build_short_url(slug=slug, base_url=base_url, path_prefix=config.path_prefix)
