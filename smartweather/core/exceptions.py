# smartweather/core/exceptions.py

from typing import Optional


class WeatherServiceError(RuntimeError):
    """Base class for errors raised while retrieving weather."""


class CredentialMissingError(WeatherServiceError):
    """No Gemini API key is configured. Never retried."""

    def __init__(self, message: str = "Gemini API key is not configured (set GEMINI_API_KEY)"):
        super().__init__(message)


class OracleError(WeatherServiceError):
    """
    The Gemini call failed (HTTP error or transport problem).

    The message keeps the upstream status code in plain text so callers can
    still match on it; `status_code` is None for transport failures.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class OracleResponseInvalidError(OracleError):
    """Gemini answered, but the reply was empty or not the expected JSON."""
