"""Interface for interacting with the user (output only).

Defines the contract for displaying information, errors, warnings and
domain records, allowing different UI implementations.
"""

import abc
from typing import Any, Dict, List

from fueltrakr.domain.models.fuel import FuelEntry
from fueltrakr.domain.models.user import User


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    @abc.abstractmethod
    def display_success(self, message: str, **kwargs: Any) -> None:
        """Displays confirmation that an action completed."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user.

        Args:
            error_message: Short, actionable message.
            **kwargs: ``detail`` may carry debug detail to show below it.
        """
        pass

    @abc.abstractmethod
    def display_entries(self, entries: List[FuelEntry], title: str = "Fuel Entries") -> None:
        """Displays fuel entries, newest first."""
        pass

    @abc.abstractmethod
    def display_users(self, users: List[User]) -> None:
        """Displays user accounts."""
        pass

    @abc.abstractmethod
    def display_mapping(self, data: Dict[str, Any], title: str) -> None:
        """Displays a small key/value summary (profile, statistics)."""
        pass
