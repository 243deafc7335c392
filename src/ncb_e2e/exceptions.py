"""
Custom exceptions for the ncb-e2e helpers.

Every error names the stage that failed (inbox scan, message-link scan,
dropdown selection, navigation) together with the marker, fragment or
field involved, so a failed scenario can be diagnosed without re-running
it under tracing.
"""

from typing import Any, Optional, Sequence


class E2EError(Exception):
    """Base exception for all ncb-e2e errors."""

    def __init__(self, message: str,
                 details: Optional[dict[str, Any]] = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error details.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


# Email verification
class LinkNotFoundError(E2EError):
    """Raised when no inbox anchor matches the marker and fragment."""

    def __init__(
        self,
        marker: str,
        fragment: str,
        scanned: int,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize link not found error.

        Args:
            marker: Substring every candidate href had to contain.
            fragment: Substring used to pick one candidate.
            scanned: Number of candidate anchors inspected.
            details: Optional dictionary with additional error details.
        """
        message = (
            f"Inbox scan: email link with '{marker}' and fragment "
            f"'{fragment}' not found. Found {scanned} links with '{marker}'."
        )
        super().__init__(message, details)
        self.marker = marker
        self.fragment = fragment
        self.scanned = scanned


class VerificationLinkNotFoundError(E2EError):
    """Raised when every tier of the message-link cascade is empty."""

    def __init__(
        self,
        cta_text: Optional[str],
        path_markers: Sequence[str] = (),
        scanned: int = 0,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize verification link not found error.

        Args:
            cta_text: Call-to-action text searched for, if any.
            path_markers: Href substrings searched for.
            scanned: Number of anchors in the message body.
            details: Optional dictionary with additional error details.
        """
        message = (
            f"Message-link scan: no verification link among {scanned} links "
            f"(text={cta_text!r}, path markers={list(path_markers)!r})"
        )
        super().__init__(message, details)
        self.cta_text = cta_text
        self.path_markers = tuple(path_markers)
        self.scanned = scanned


class NavigationTimeoutError(E2EError):
    """Raised when a strict navigation wait runs out of time."""

    def __init__(
        self,
        stage: str,
        pattern: Optional[str] = None,
        timeout: Optional[float] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        message = f"Navigation race ({stage}) timed out"
        if pattern:
            message += f" waiting for '{pattern}'"
        if timeout is not None:
            message += f" after {timeout:g} ms"
        super().__init__(message, details)
        self.stage = stage
        self.pattern = pattern
        self.timeout = timeout


# Dependent fields
class OptionNotFoundError(E2EError):
    """Raised when the selection text matches no visible option."""

    def __init__(
        self,
        field: str,
        text: str,
        visible: Sequence[str] = (),
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize option not found error.

        Args:
            field: Name of the dependent field.
            text: Option text that was requested.
            visible: Texts of the options that were visible.
        """
        message = (
            f"Dropdown '{field}': option '{text}' not found among "
            f"{len(visible)} visible options"
        )
        super().__init__(message, details)
        self.field = field
        self.text = text
        self.visible = list(visible)


class FieldDisabledError(E2EError):
    """Raised when a dependent field never becomes interactive."""

    def __init__(
        self,
        field: str,
        timeout: float,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            f"Dropdown '{field}' did not become enabled within {timeout:g} ms",
            details,
        )
        self.field = field
        self.timeout = timeout


class AmbiguousOptionWarning(UserWarning):
    """Several visible options matched; the first in document order was used."""


# Configuration
class ConfigurationError(E2EError):
    """Base exception for configuration-related errors."""


class MissingConfigError(ConfigurationError):
    """Raised when a required configuration value is missing."""

    def __init__(
        self, config_key: str, details: Optional[dict[str, Any]] = None
    ) -> None:
        """
        Initialize missing config error.

        Args:
            config_key: The missing configuration key.
            details: Optional dictionary with additional error details.
        """
        super().__init__(
            f"Missing required configuration: '{config_key}'", details)
        self.config_key = config_key
