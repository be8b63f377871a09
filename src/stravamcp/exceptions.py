"""
Custom exceptions for stravamcp.

Defines specific exception types for better error handling and debugging.
"""

from typing import Optional


class StravaMcpError(Exception):
    """Base exception for all stravamcp errors."""


class ConfigurationError(StravaMcpError):
    """Exception raised for configuration errors."""


class CredentialError(StravaMcpError):
    """Exception raised when refresh credentials are missing."""


class AuthenticationError(StravaMcpError):
    """Exception raised when Strava rejects a token exchange."""


class APIError(StravaMcpError):
    """Exception raised for non-200 Strava API responses."""

    def __init__(self, status_code: int, message: str = "", operation: Optional[str] = None):
        super().__init__(f"Strava API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.operation = operation

    @property
    def is_authorization_error(self) -> bool:
        """True when the access token was rejected (HTTP 401)."""
        return self.status_code == 401


class ValidationError(StravaMcpError):
    """Exception raised for invalid tool arguments."""
