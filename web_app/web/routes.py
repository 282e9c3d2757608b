"""Public short-link redirects."""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import RedirectResponse

from linkcore.models import RedirectOutcome

from ..api.deps import get_services
from ..services import Services

router = APIRouter()


@router.get("/health", include_in_schema=False)
async def health_check_web(services: Services = Depends(get_services)):
    """Health check endpoint (simple version for load balancers)."""
    if await services.store.health_check():
        return {"status": "healthy"}
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="unhealthy")


@router.get("/{slug}", include_in_schema=False)
async def redirect_to_url(slug: str, services: Services = Depends(get_services)):
    """Redirect to the original URL, counting the visit."""
    outcome, link = await services.clicks.resolve_redirect(slug)

    if outcome == RedirectOutcome.NOT_FOUND:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Short link '{slug}' not found",
        )
    if outcome == RedirectOutcome.EXPIRED:
        raise HTTPException(
            status_code=status.HTTP_410_GONE,
            detail=f"Short link '{slug}' has expired",
        )

    # 302 so every visit reaches us and is counted
    return RedirectResponse(url=link.original_url, status_code=status.HTTP_302_FOUND)
