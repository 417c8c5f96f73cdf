"""Generation Service: the surface the rest of the application calls.

Wraps the credential pool (management operations), the resilient executor
(outbound calls) and the recovery engine (structured output) behind one
object. The CLI command handler, or any HTTP layer put in front of it,
only ever talks to this service.
"""

import logging
from typing import List, Optional

from genpool.domain.errors import InvalidCredentialError, TerminalError
from genpool.domain.interfaces.ai_model import AIModel
from genpool.domain.models.ai import (
    GenerationOutcome, OUTCOME_RECOVERY_FAILURE, OUTCOME_SUCCESS, OUTCOME_TERMINAL_ERROR,
)
from genpool.domain.models.common import CredentialId, PromptText
from genpool.domain.models.credential import (
    CredentialTestResult, CredentialView, PoolStats, ValidationReport,
)
from genpool.domain.models.recovery import RecoveryFailure
from genpool.infrastructure.credentials.pool import CredentialPool
from genpool.infrastructure.recovery.json_recovery import StructuredOutputRecovery
from genpool.infrastructure.resilience.api_retry import ResilientCallExecutor

logger = logging.getLogger(__name__)


class GenerationService:
    """Credential management plus execute-and-recover."""

    def __init__(
        self,
        pool: CredentialPool,
        executor: ResilientCallExecutor,
        ai_model: AIModel,
        recovery: Optional[StructuredOutputRecovery] = None,
    ):
        self.pool = pool
        self.executor = executor
        self.ai_model = ai_model
        self.recovery = recovery or StructuredOutputRecovery()

    # --- Credential management ---

    async def register_credential(self, secret: str, label: Optional[str] = None,
                                  validate: bool = False) -> CredentialId:
        """Adds a credential to the pool, optionally probing it first.

        Raises:
            ValueError: The secret is empty.
            InvalidCredentialError: `validate` is set and the probe failed.
        """
        if validate:
            result = await self.test_credential(secret)
            if not result.is_valid:
                raise InvalidCredentialError(result.error)
        return self.pool.register(secret, label)

    def remove_credential(self, credential_id: str) -> bool:
        return self.pool.remove(credential_id)

    def rename_credential(self, credential_id: str, label: str) -> bool:
        return self.pool.rename(credential_id, label)

    def get_credential(self, credential_id: str) -> Optional[CredentialView]:
        return self.pool.get(credential_id)

    def list_credentials(self) -> List[CredentialView]:
        return self.pool.views()

    def get_stats(self) -> PoolStats:
        return self.pool.stats()

    def usable_count(self) -> int:
        return self.pool.usable_count()

    def cleanup(self) -> int:
        removed = self.pool.sweep()
        logger.info(f"Cleanup removed {removed} suspended credential(s)")
        return removed

    async def _probe(self, secret: str) -> Optional[Exception]:
        """Returns None when the credential works, else the provider error."""
        try:
            await self.ai_model.ping(secret)
        except Exception as e:
            logger.debug(f"Credential probe failed: {type(e).__name__}: {e}")
            return e
        return None

    async def test_credential(self, secret: str) -> CredentialTestResult:
        """Probes a secret against the live service without storing it."""
        error = await self._probe(secret)
        if error is None:
            return CredentialTestResult(is_valid=True)
        return CredentialTestResult(is_valid=False, error=str(error) or type(error).__name__)

    async def validate_all(self) -> ValidationReport:
        """Probes every stored credential once and updates its health."""
        tested = valid = invalid = 0
        for credential_id, secret in self.pool.secrets_by_id().items():
            tested += 1
            error = await self._probe(secret)
            if error is None:
                valid += 1
                self.pool.mark_valid(credential_id)
            else:
                invalid += 1
                self.pool.mark_invalid(credential_id, error)
        logger.info(f"Validated {tested} keys: {valid} valid, {invalid} invalid")
        return ValidationReport(tested=tested, valid=valid, invalid=invalid)

    # --- Composed entry point ---

    async def execute_and_recover(
        self,
        payload: PromptText,
        expected_shape: Optional[str] = None,
        max_attempts: Optional[int] = None,
    ) -> GenerationOutcome:
        """Calls the provider through the pool and recovers a structured value.

        Returns a GenerationOutcome whose kind is 'success', 'terminal_error'
        or 'recovery_failure'. Nothing is raised for routine failures.
        """
        try:
            text = await self.executor.execute(payload, max_attempts=max_attempts)
        except TerminalError as e:
            logger.warning(f"Generation failed ({e.kind}): {e}")
            return GenerationOutcome(kind=OUTCOME_TERMINAL_ERROR, error=e)

        result = self.recovery.recover(text, expected_shape)
        if isinstance(result, RecoveryFailure):
            return GenerationOutcome(kind=OUTCOME_RECOVERY_FAILURE, raw_text=text, failure=result)
        return GenerationOutcome(
            kind=OUTCOME_SUCCESS,
            value=result.value,
            strategy=result.strategy,
            raw_text=text,
        )
