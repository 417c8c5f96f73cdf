"""Domain Events related to API calls and credential health.

Examples include events for when a credential is selected, a call fails,
a retry is scheduled or the pool sweeps suspended credentials.
"""

from dataclasses import dataclass, field
import time

@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass

# --- Credential Events ---

@dataclass
class CredentialSelected(DomainEvent):
    """Event triggered when the pool hands a credential to a caller."""
    credential_id: str
    label: str
    timestamp: float = field(default_factory=time.time)

@dataclass
class CredentialSuspended(DomainEvent):
    """Event triggered when a credential leaves the usable set."""
    credential_id: str
    label: str
    error_count: int
    hard_invalid: bool
    timestamp: float = field(default_factory=time.time)

@dataclass
class CredentialsSwept(DomainEvent):
    """Event triggered when suspended credentials are purged."""
    removed_count: int
    timestamp: float = field(default_factory=time.time)

# --- API Call Events ---

@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when an API call succeeds."""
    provider: str
    attempt_number: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)

@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when a single API call attempt fails."""
    provider: str
    attempt_number: int
    error_type: str
    error_class: str
    error_message: str
    timestamp: float = field(default_factory=time.time)

@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a backoff delay is scheduled before the next attempt."""
    provider: str
    attempt_number: int
    delay_seconds: float
    timestamp: float = field(default_factory=time.time)
