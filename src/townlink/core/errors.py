"""
Custom exception hierarchy for townlink.

This module defines the exceptions raised by the road generator, the terrain
map and the configuration layer so callers can handle them uniformly.
"""

from typing import Any, Dict, List, Optional


class TownlinkException(Exception):
    """
    Base exception for all townlink-specific errors.

    Attributes:
        error_code: String identifier for the error type
        message: User-friendly error message
        details: Technical details for logging/debugging
        suggestions: Optional list of resolution suggestions
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize TownlinkException.

        Args:
            message: User-friendly error message
            error_code: String identifier for the error type
            details: Technical details for logging
            suggestions: List of suggestions for resolution
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestions = suggestions or []

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary.

        Returns:
            Dictionary representation of the error
        """
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "suggestions": self.suggestions,
        }

    def __str__(self) -> str:
        """String representation of the exception."""
        return f"{self.error_code}: {self.message}"

    def __repr__(self) -> str:
        """Detailed string representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"error_code='{self.error_code}', "
            f"message='{self.message}')"
        )


class ValidationError(TownlinkException):
    """
    Raised when input validation fails.

    Used for tiles outside the map, malformed settlement records and
    similar bad input handed to the terrain map or the registry.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize ValidationError.

        Args:
            message: User-friendly error message
            field: Name of the field that failed validation
            details: Technical details about the validation failure
            suggestions: List of suggestions for fixing the validation error
        """
        error_details = details or {}
        if field:
            error_details["field"] = field

        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=error_details,
            suggestions=suggestions or ["Check the input values and try again"],
        )


class GeometryError(TownlinkException):
    """
    Raised when a geometric contract is violated.

    Callers may only ask about edges between orthogonally adjacent tiles;
    anything else is a programming error, not a recoverable condition.
    """

    def __init__(
        self,
        message: str,
        tiles: Optional[List[int]] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize GeometryError.

        Args:
            message: User-friendly error message
            tiles: Tile indices involved in the violation
            details: Technical details about the geometry error
            suggestions: List of suggestions for fixing the call site
        """
        error_details = details or {}
        if tiles:
            error_details["tiles"] = list(tiles)

        super().__init__(
            message=message,
            error_code="GEOMETRY_ERROR",
            details=error_details,
            suggestions=suggestions or ["Only check edges between adjacent tiles"],
        )


class ConfigurationError(TownlinkException):
    """
    Raised when generator or search configuration is invalid.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize ConfigurationError.

        Args:
            message: User-friendly error message
            config_key: Configuration key that is invalid
            details: Technical details about the configuration error
            suggestions: List of suggestions for resolution
        """
        error_details = details or {}
        if config_key:
            error_details["config_key"] = config_key

        default_suggestions = [
            "Check TOWNLINK_* environment variables",
            "Verify the values passed to GeneratorConfig",
        ]

        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details=error_details,
            suggestions=suggestions or default_suggestions,
        )


class UnreachableSettlementError(TownlinkException):
    """
    Raised when settlements cannot be joined to the road network.

    Produced when a settlement reached neither the other settlements of its
    round nor the network already built, or when the round cap stopped
    generation with settlements still waiting.
    """

    def __init__(
        self,
        message: str,
        settlement_ids: Optional[List[int]] = None,
        rounds: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize UnreachableSettlementError.

        Args:
            message: User-friendly error message
            settlement_ids: Settlements left without a connection
            rounds: Number of rounds run before giving up
            details: Technical details about the failure
            suggestions: List of suggestions for resolution
        """
        error_details = details or {}
        error_details["settlement_ids"] = list(settlement_ids or [])
        if rounds is not None:
            error_details["rounds"] = rounds

        default_suggestions = [
            "Check whether the settlements are enclosed by water or steep terrain",
            "Set raise_on_unreachable=False to keep the partial network",
        ]

        super().__init__(
            message=message,
            error_code="UNREACHABLE_SETTLEMENT",
            details=error_details,
            suggestions=suggestions or default_suggestions,
        )
        self.settlement_ids = error_details["settlement_ids"]
