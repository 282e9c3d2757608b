"""Pydantic schemas for API requests and responses."""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

from linkcore.models import ShortLink, User, UserRole


class RegisterRequest(BaseModel):
    """Self-registration."""

    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1)
    name: str = Field("", max_length=200)


class LoginRequest(BaseModel):
    email: str
    password: str


class RecoverRequest(BaseModel):
    email: str


class UserResponse(BaseModel):
    """A user without credential."""

    id: str
    email: str
    name: str
    role: UserRole
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            created_at=user.created_at,
        )


class SessionResponse(BaseModel):
    token: str
    user: UserResponse


class CreateUserRequest(BaseModel):
    """Admin-initiated account creation."""

    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1)
    name: str = Field("", max_length=200)
    role: UserRole = UserRole.USER


class UpdateUserRequest(BaseModel):
    """Full profile update; an empty password keeps the current one."""

    email: str = Field(..., min_length=3, max_length=320)
    name: str = Field("", max_length=200)
    role: UserRole
    password: Optional[str] = None


class CreateLinkRequest(BaseModel):
    """Request to shorten a URL."""

    url: str = Field(..., description="The URL to shorten", min_length=1, max_length=2048)
    slug: Optional[str] = Field(None, description="Optional custom slug", max_length=64)
    expires_at: Optional[datetime] = Field(None, description="Ignored for guest links")
    replace_existing: bool = Field(
        False,
        description="Guests only: confirm abandoning the link this session already holds",
    )

    @field_validator("slug")
    @classmethod
    def blank_slug_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"url": "https://example.com/very/long/path/to/resource"},
                {"url": "https://github.com/user/repo", "slug": "myrepo"},
            ]
        }
    }


class UpdateLinkRequest(BaseModel):
    slug: str = Field(..., min_length=1, max_length=64)
    url: str = Field(..., min_length=1, max_length=2048)


class UpdateExpiryRequest(BaseModel):
    expires_at: Optional[datetime] = Field(None, description="null clears the expiry")


class DailyStatResponse(BaseModel):
    date: str
    count: int


class LinkResponse(BaseModel):
    """A short link with its statistics."""

    id: str
    slug: str
    short_url: str
    original_url: str
    creator_id: str
    clicks: int
    created_at: datetime
    last_clicked_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    expired: bool
    history: List[DailyStatResponse]

    @classmethod
    def from_link(cls, link: ShortLink, short_url: str, now: datetime) -> "LinkResponse":
        return cls(
            id=link.id,
            slug=link.slug,
            short_url=short_url,
            original_url=link.original_url,
            creator_id=link.creator_id,
            clicks=link.clicks,
            created_at=link.created_at,
            last_clicked_at=link.last_clicked_at,
            expires_at=link.expires_at,
            expired=link.is_expired(now),
            history=[DailyStatResponse(date=stat.date, count=stat.count) for stat in link.history],
        )


class GuestLinkResponse(LinkResponse):
    """Creation result; guest_session is set for anonymous callers."""

    guest_session: Optional[str] = None


class BulkResponse(BaseModel):
    success_count: int
    errors: List[str]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status")
    storage: str = Field(..., description="Storage backend status")
    timestamp: datetime = Field(..., description="Check timestamp")


class StatisticsResponse(BaseModel):
    """Statistics response."""

    total_links: int
    total_clicks: int
    total_users: int
    guest_links: int
    expired_links: int
    storage_backend: str
