"""Interface for interacting with the user.

Defines the contract for displaying results, errors, warnings and pool
tables, and for reading shell input, allowing different UI implementations.
"""

import abc
from typing import Any, List

from genpool.domain.models.common import ProcessedOutput
from genpool.domain.models.credential import CredentialView, PoolStats

class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_output(self, output: ProcessedOutput, **kwargs: Any) -> None:
        """Displays standard output to the user.

        Args:
            output: The processed output string to display.
            **kwargs: Additional arguments for formatting (e.g., title).
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    @abc.abstractmethod
    def display_credentials(self, credentials: List[CredentialView]) -> None:
        """Displays the credential pool without secrets."""
        pass

    @abc.abstractmethod
    def display_stats(self, stats: PoolStats) -> None:
        """Displays a pool health snapshot."""
        pass

    @abc.abstractmethod
    def get_prompt(self, prompt_message: str = "> ") -> str:
        """Reads one line of input from the user synchronously.

        Note: For async contexts, the caller should wrap this in asyncio.to_thread.
        Raises EOFError when input is closed.
        """
        pass
