"""Data models for the link registry."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


GUEST_CREATOR_ID = "guest"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts the ``...Z`` suffix produced by JavaScript's ``toISOString``.
    Naive values are assumed to be UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Format an aware datetime as ISO-8601, or None."""
    return value.isoformat() if value else None


class UserRole(str, Enum):
    """Account roles, in increasing order of privilege."""

    USER = "USER"
    ADMIN = "ADMIN"
    OWNER = "OWNER"


@dataclass
class User:
    """A registered account."""

    id: str
    email: str
    name: str
    role: UserRole
    credential: str
    created_at: datetime

    def to_dict(self, include_credential: bool = False) -> dict:
        """Convert to dictionary.

        The credential is only included for snapshot export.
        """
        data = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
            "createdAt": format_timestamp(self.created_at),
        }
        if include_credential:
            data["password"] = self.credential
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        """Create from dictionary."""
        return cls(
            id=str(data["id"]),
            email=str(data["email"]),
            name=str(data.get("name", "")),
            role=UserRole(data.get("role", UserRole.USER.value)),
            credential=str(data.get("password") or data.get("credential") or ""),
            created_at=parse_timestamp(data.get("createdAt")) or datetime.now(timezone.utc),
        )


@dataclass
class DailyStat:
    """Clicks recorded for one link on one local calendar day."""

    date: str
    count: int = 0

    def to_dict(self) -> dict:
        return {"date": self.date, "count": self.count}

    @classmethod
    def from_dict(cls, data: dict) -> "DailyStat":
        return cls(date=str(data["date"]), count=int(data.get("count", 0)))


@dataclass
class ShortLink:
    """A slug-to-URL mapping with its click counters."""

    id: str
    original_url: str
    slug: str
    creator_id: str
    created_at: datetime
    clicks: int = 0
    last_clicked_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    history: List[DailyStat] = field(default_factory=list)

    @property
    def is_guest(self) -> bool:
        return self.creator_id == GUEST_CREATOR_ID

    def is_expired(self, now: datetime) -> bool:
        """True when an expiry is set and lies in the past."""
        return self.expires_at is not None and self.expires_at < now

    def copy(self) -> "ShortLink":
        """Copy with an independent history list."""
        return replace(self, history=[replace(stat) for stat in self.history])

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "originalUrl": self.original_url,
            "slug": self.slug,
            "creatorId": self.creator_id,
            "clicks": self.clicks,
            "createdAt": format_timestamp(self.created_at),
            "lastClickedAt": format_timestamp(self.last_clicked_at),
            "expiresAt": format_timestamp(self.expires_at),
            "history": [stat.to_dict() for stat in self.history],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ShortLink":
        """Create from dictionary."""
        history = sorted(
            (DailyStat.from_dict(item) for item in data.get("history") or []),
            key=lambda stat: stat.date,
        )
        return cls(
            id=str(data["id"]),
            original_url=str(data["originalUrl"]),
            slug=str(data["slug"]),
            creator_id=str(data.get("creatorId", GUEST_CREATOR_ID)),
            created_at=parse_timestamp(data.get("createdAt")) or datetime.now(timezone.utc),
            clicks=int(data.get("clicks", 0)),
            last_clicked_at=parse_timestamp(data.get("lastClickedAt")),
            expires_at=parse_timestamp(data.get("expiresAt")),
            history=history,
        )


@dataclass(frozen=True)
class Actor:
    """The verified identity behind a privileged call."""

    id: str
    role: UserRole

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, role=user.role)


@dataclass
class BulkItem:
    """One row of a bulk upload."""

    url: str
    slug: Optional[str] = None


@dataclass
class BulkResult:
    """Outcome of a bulk creation."""

    success_count: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"success_count": self.success_count, "errors": list(self.errors)}


class RedirectOutcome(str, Enum):
    """Result of resolving a slug for a visitor."""

    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    REDIRECT = "redirect"
