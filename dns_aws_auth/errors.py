"""Error types raised while resolving AWS credentials.

Resolution-time errors (``ConfigConstructionError``) abort the whole resolution.
Retrieval-time errors (``CredentialRetrievalError``, ``RoleAssumptionError``)
are raised by ``retrieve()`` on a single configuration and leave the other
configurations of the same resolution untouched.
"""

from typing import Optional


class AWSAuthError(Exception):
    """Base class for credential resolution failures."""

    label = "AWS Auth Error"

    def __init__(self, message: str, suggestion: Optional[str] = None, details: Optional[str] = None):
        # Include all parts in the base exception message for better error reporting
        full_message = message
        if suggestion:
            full_message += f"\n\n{suggestion}"
        if details:
            full_message += f"\n\n{details}"
        super().__init__(full_message)
        self.message = message
        self.suggestion = suggestion
        self.details = details

    def format(self) -> str:
        """Format error for console output with suggestions."""
        output = f"❌ {self.label}: {self.message}"
        if self.suggestion:
            output += f"\n   💡 {self.suggestion}"
        if self.details:
            output += f"\n   ℹ️  {self.details}"
        return output


class ConfigConstructionError(AWSAuthError):
    """Raised when the session configuration cannot be turned into a credential chain."""

    label = "Configuration Error"


class CredentialRetrievalError(AWSAuthError):
    """Raised by ``retrieve()`` when no credential source yields access keys."""

    label = "Credential Error"


class RoleAssumptionError(AWSAuthError):
    """Raised by ``retrieve()`` when the STS AssumeRole call fails."""

    label = "Role Assumption Error"

    def __init__(
        self,
        message: str,
        role_arn: Optional[str] = None,
        suggestion: Optional[str] = None,
        details: Optional[str] = None,
    ):
        super().__init__(message, suggestion=suggestion, details=details)
        self.role_arn = role_arn
