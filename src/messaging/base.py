"""Base classes for messaging platforms.

Provides abstract interfaces for message formatting that allow swapping
messaging platforms without changing call sites.
"""

from abc import ABC, abstractmethod


class MessageFormatter(ABC):
    """Abstract base class for message formatters.

    Implementations convert loosely formatted text to a platform-specific
    markup dialect.
    """

    @abstractmethod
    def format(self, text: str) -> tuple[str, str]:
        """Convert text to the platform-specific format.

        :param text: Loosely formatted input text.
        :returns: Tuple of (formatted_text, parse_mode).
        """
        ...
