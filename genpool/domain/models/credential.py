"""Domain models for the credential pool.

A Credential is one unit of access to the generative service: an opaque
secret plus the health metadata the pool uses for selection. Only the pool
ever sees the secret; everything handed outside is a CredentialView.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from .common import CredentialId, CredentialLabel


def utcnow() -> datetime:
    """Timezone-aware 'now', used for every credential timestamp."""
    return datetime.now(timezone.utc)


class CredentialHealth(str, enum.Enum):
    """Health state of a credential.

    HEALTHY and DEGRADED are usable for selection; SUSPENDED is terminal
    until an operator re-validates the credential.
    """
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    SUSPENDED = "suspended"

    @property
    def is_usable(self) -> bool:
        return self is not CredentialHealth.SUSPENDED


@dataclass
class Credential:
    """Entity owned by the CredentialPool. Never leaves the pool."""
    id: CredentialId
    secret: str = field(repr=False)
    label: CredentialLabel
    health: CredentialHealth = CredentialHealth.HEALTHY
    error_count: int = 0
    last_used_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    expires_at: Optional[datetime] = None

    @property
    def is_usable(self) -> bool:
        return self.health.is_usable

    def to_view(self) -> "CredentialView":
        return CredentialView(
            id=self.id,
            label=self.label,
            health=self.health,
            error_count=self.error_count,
            last_used_at=self.last_used_at,
            created_at=self.created_at,
            expires_at=self.expires_at,
        )


@dataclass(frozen=True)
class CredentialView:
    """Read-only projection of a Credential without the secret."""
    id: CredentialId
    label: CredentialLabel
    health: CredentialHealth
    error_count: int
    last_used_at: Optional[datetime]
    created_at: datetime
    expires_at: Optional[datetime] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "health": self.health.value,
            "errorCount": self.error_count,
            "lastUsedAt": self.last_used_at.isoformat() if self.last_used_at else None,
            "createdAt": self.created_at.isoformat(),
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
        }


@dataclass(frozen=True)
class PoolStats:
    """Point-in-time snapshot of pool health."""
    total: int
    usable: int
    suspended: int
    degraded: int


@dataclass(frozen=True)
class ValidationReport:
    """Result of probing every stored credential once."""
    tested: int
    valid: int
    invalid: int


@dataclass(frozen=True)
class CredentialTestResult:
    """Result of probing a single secret against the live service."""
    is_valid: bool
    error: Optional[str] = None
