"""In-memory credential pool with health tracking and round-robin selection.

The pool is the only owner of credential secrets. It hands a secret out on
`select()`, takes outcome reports back keyed by that secret, and exposes
everything else through secret-free CredentialView objects.

Health transitions:
    HEALTHY -> DEGRADED   first non-fatal failure
    DEGRADED -> SUSPENDED error counter reaches the threshold
    any -> SUSPENDED      hard-invalid failure (expires_at is stamped)
    DEGRADED -> HEALTHY   one success resets the counter
    SUSPENDED -> removed  sweep()
"""

import logging
import secrets as _random
import string
import threading
import time
from typing import Any, Collection, Dict, List, Optional

from genpool.domain.events import dispatch_event
from genpool.domain.events.api_events import CredentialSelected, CredentialSuspended, CredentialsSwept
from genpool.domain.models.common import CredentialId, CredentialLabel
from genpool.domain.models.credential import (
    Credential, CredentialHealth, CredentialView, PoolStats, utcnow,
)
from genpool.infrastructure.credentials.classification import is_hard_invalid

logger = logging.getLogger(__name__)

DEFAULT_ERROR_THRESHOLD = 3
_ID_ALPHABET = string.ascii_lowercase + string.digits


def _new_credential_id() -> CredentialId:
    suffix = "".join(_random.choice(_ID_ALPHABET) for _ in range(6))
    return CredentialId(f"key_{int(time.time() * 1000)}_{suffix}")


class CredentialPool:
    """Owns a set of credentials and their rotation cursor."""

    def __init__(self, error_threshold: int = DEFAULT_ERROR_THRESHOLD):
        """Initializes an empty pool.

        Args:
            error_threshold: Consecutive non-fatal failures after which a
                credential is suspended.
        """
        if error_threshold < 1:
            raise ValueError("error_threshold must be at least 1")
        self.error_threshold = error_threshold
        self._credentials: Dict[CredentialId, Credential] = {}
        self._cursor = 0
        # Guards every mutation; selection and reporting are short and in-memory.
        self._lock = threading.RLock()
        logger.info(f"CredentialPool initialized: error_threshold={error_threshold}")

    # --- Registration ---

    def register(self, secret: str, label: Optional[str] = None) -> CredentialId:
        """Adds a new HEALTHY credential and returns its id."""
        if not isinstance(secret, str) or not secret.strip():
            raise ValueError("API key is required and must be a non-empty string")
        with self._lock:
            credential_id = _new_credential_id()
            while credential_id in self._credentials:
                credential_id = _new_credential_id()
            credential = Credential(
                id=credential_id,
                secret=secret.strip(),
                label=CredentialLabel(label or f"Key {len(self._credentials) + 1}"),
            )
            self._credentials[credential_id] = credential
        logger.info(f"Registered credential '{credential.label}' ({credential_id})")
        return credential_id

    def remove(self, credential_id: str) -> bool:
        with self._lock:
            credential = self._credentials.pop(CredentialId(credential_id), None)
        if credential is None:
            return False
        logger.info(f"Removed credential '{credential.label}' ({credential_id})")
        return True

    def rename(self, credential_id: str, label: str) -> bool:
        with self._lock:
            credential = self._credentials.get(CredentialId(credential_id))
            if credential is None:
                return False
            credential.label = CredentialLabel(label)
        return True

    # --- Selection ---

    def _usable(self) -> List[Credential]:
        return [c for c in self._credentials.values() if c.is_usable]

    def select(self) -> Optional[str]:
        """Returns the next usable secret in round-robin order, or None.

        None is the expected "nothing available" outcome, not an error.
        """
        with self._lock:
            usable = self._usable()
            if not usable:
                logger.warning("No usable credentials in pool.")
                return None
            # Cursor is re-bounded by the usable count at every call, so
            # additions/removals between calls never leave it out of range.
            credential = usable[self._cursor % len(usable)]
            self._cursor = (self._cursor + 1) % len(usable)
            credential.last_used_at = utcnow()
        dispatch_event(CredentialSelected(credential_id=credential.id, label=credential.label))
        return credential.secret

    # --- Outcome reporting ---

    def _find(self, secret: str) -> Optional[Credential]:
        for credential in self._credentials.values():
            if credential.secret == secret:
                return credential
        return None

    def report_success(self, secret: str) -> None:
        """Resets the credential's error counter after a successful call."""
        with self._lock:
            credential = self._find(secret)
            if credential is None or credential.health is CredentialHealth.SUSPENDED:
                return
            if credential.error_count:
                logger.info(f"Credential '{credential.label}' recovered after {credential.error_count} error(s)")
            credential.error_count = 0
            credential.health = CredentialHealth.HEALTHY

    def report_failure(self, secret: str, error: Any = None) -> None:
        """Records a failed call and suspends the credential when warranted."""
        hard_invalid = is_hard_invalid(error)
        with self._lock:
            credential = self._find(secret)
            if credential is None:
                return
            credential.error_count += 1
            was_suspended = credential.health is CredentialHealth.SUSPENDED
            if hard_invalid:
                credential.expires_at = utcnow()
                credential.health = CredentialHealth.SUSPENDED
            elif credential.error_count >= self.error_threshold:
                credential.health = CredentialHealth.SUSPENDED
            elif not was_suspended:
                credential.health = CredentialHealth.DEGRADED
            newly_suspended = not was_suspended and credential.health is CredentialHealth.SUSPENDED

        if newly_suspended:
            reason = "rejected as expired/invalid" if hard_invalid else f"{credential.error_count} errors"
            logger.warning(f"Credential '{credential.label}' suspended ({reason})")
            dispatch_event(CredentialSuspended(
                credential_id=credential.id,
                label=credential.label,
                error_count=credential.error_count,
                hard_invalid=hard_invalid,
            ))
        else:
            logger.debug(f"Credential '{credential.label}' error count now {credential.error_count}")

    # --- Operator actions ---

    def mark_valid(self, credential_id: str) -> None:
        """Re-validation succeeded: back to HEALTHY with a clean counter."""
        with self._lock:
            credential = self._credentials.get(CredentialId(credential_id))
            if credential is None:
                return
            credential.error_count = 0
            credential.health = CredentialHealth.HEALTHY

    def mark_invalid(self, credential_id: str, error: Any = None) -> None:
        """Re-validation failed: suspend, stamping expiry when hard-invalid."""
        with self._lock:
            credential = self._credentials.get(CredentialId(credential_id))
            if credential is None:
                return
            credential.error_count = max(credential.error_count, self.error_threshold)
            credential.health = CredentialHealth.SUSPENDED
            if is_hard_invalid(error):
                credential.expires_at = utcnow()

    def sweep(self) -> int:
        """Permanently deletes every SUSPENDED credential."""
        with self._lock:
            doomed = [c for c in self._credentials.values() if c.health is CredentialHealth.SUSPENDED]
            for credential in doomed:
                del self._credentials[credential.id]
        for credential in doomed:
            logger.info(f"Removed expired/invalid credential: '{credential.label}'")
        if doomed:
            dispatch_event(CredentialsSwept(removed_count=len(doomed)))
        return len(doomed)

    # --- Queries ---

    def secrets_by_id(self) -> Dict[CredentialId, str]:
        """Snapshot of id -> secret for in-package probing. Never expose this."""
        with self._lock:
            return {c.id: c.secret for c in self._credentials.values()}

    def usable_count(self) -> int:
        with self._lock:
            return len(self._usable())

    def untried_usable_count(self, tried: Collection[str]) -> int:
        """Number of usable credentials whose secret is not in `tried`."""
        with self._lock:
            return sum(1 for c in self._usable() if c.secret not in tried)

    def get(self, credential_id: str) -> Optional[CredentialView]:
        with self._lock:
            credential = self._credentials.get(CredentialId(credential_id))
            return credential.to_view() if credential else None

    def views(self) -> List[CredentialView]:
        with self._lock:
            return [c.to_view() for c in self._credentials.values()]

    def stats(self) -> PoolStats:
        with self._lock:
            credentials = list(self._credentials.values())
        return PoolStats(
            total=len(credentials),
            usable=sum(1 for c in credentials if c.is_usable),
            suspended=sum(1 for c in credentials if c.health is CredentialHealth.SUSPENDED),
            degraded=sum(1 for c in credentials if c.health is CredentialHealth.DEGRADED),
        )

    def __len__(self) -> int:
        return len(self._credentials)
