"""Interface for interacting with the user (output).

Defines the contract for displaying results, errors, warnings and tables,
allowing different UI implementations (e.g., console, tests).
"""

import abc
from typing import Any, Mapping


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_output(self, output: str, **kwargs: Any) -> None:
        """Displays standard output to the user.

        Args:
            output: The text to display (e.g., a registry response).
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

    def display_table(self, title: str, rows: Mapping[str, Any]) -> None:
        """Displays key/value rows as a table.

        Args:
            title: Table title.
            rows: Ordered mapping of labels to values.
        """
        pass
