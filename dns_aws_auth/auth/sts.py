"""STS role assumption.

``STSRoleAssumer`` turns a role ARN into temporary credentials through any
object shaped like a boto3 STS client. Production code passes a factory that
builds the real client from the base credential chain; tests pass a recording
double. The client is created on first use so that resolving configurations
never touches the network.
"""

import socket
import threading
import time
from typing import Any, Callable, Dict, Optional, Protocol

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import RoleAssumptionError
from .credentials import AWSCredentials

logger = structlog.get_logger(__name__)

# AWS limit for RoleSessionName
MAX_SESSION_NAME_LENGTH = 64
DEFAULT_SESSION_NAME_PREFIX = "external-dns"


class STSClient(Protocol):
    """The part of the boto3 STS client used here."""

    def assume_role(self, **kwargs: Any) -> Dict[str, Any]: ...


class RoleAssumer(Protocol):
    """Exchanges a role ARN for temporary credentials."""

    def assume_role(self, role_arn: str, session_name: Optional[str] = None) -> AWSCredentials: ...


def generate_session_name(prefix: str = DEFAULT_SESSION_NAME_PREFIX) -> str:
    """Generate a unique session name for role assumption.

    Session names include hostname/pod info for CloudTrail auditing.

    Returns:
        Session name in format: "{prefix}-{hostname}-{timestamp}"
    """
    try:
        hostname = socket.gethostname()
    except OSError:
        hostname = ""
    hostname = "".join(c for c in hostname if c.isalnum() or c in "-_.") or "unknown"

    timestamp = int(time.time())
    # Reserve room for prefix, timestamp and separators
    room = MAX_SESSION_NAME_LENGTH - len(prefix) - len(str(timestamp)) - 2
    hostname = hostname[: max(room, 0)]

    name = f"{prefix}-{hostname}-{timestamp}" if hostname else f"{prefix}-{timestamp}"
    return name[:MAX_SESSION_NAME_LENGTH]


class STSRoleAssumer:
    """Assumes IAM roles through an STS client.

    No retries happen here; retry policy belongs to the client's botocore
    config. SDK errors are logged and re-raised unchanged.

    Attributes:
        external_id: ExternalId sent with every call (None to omit)
        duration_seconds: Requested credential lifetime
    """

    def __init__(
        self,
        client_factory: Callable[[], STSClient],
        external_id: Optional[str] = None,
        duration_seconds: int = 3600,
    ):
        self._client_factory = client_factory
        self._client: Optional[STSClient] = None
        self._client_lock = threading.Lock()
        self.external_id = external_id
        self.duration_seconds = duration_seconds

    @classmethod
    def from_client(cls, client: STSClient, **kwargs: Any) -> "STSRoleAssumer":
        return cls(lambda: client, **kwargs)

    def _get_client(self) -> STSClient:
        with self._client_lock:
            if self._client is None:
                self._client = self._client_factory()
            return self._client

    def assume_role(self, role_arn: str, session_name: Optional[str] = None) -> AWSCredentials:
        """Assume IAM role and return temporary credentials.

        Args:
            role_arn: ARN of IAM role to assume
            session_name: RoleSessionName (generated when None)

        Returns:
            AWSCredentials with session token and expiration

        Raises:
            BotoCoreError, ClientError: If the STS call fails
            RoleAssumptionError: If the response carries no usable credentials
        """
        params: Dict[str, Any] = {
            "RoleArn": role_arn,
            "RoleSessionName": session_name or generate_session_name(),
            "DurationSeconds": self.duration_seconds,
        }
        if self.external_id:
            params["ExternalId"] = self.external_id

        logger.debug(
            "Assuming IAM role",
            role_arn=role_arn,
            session_name=params["RoleSessionName"],
            has_external_id=bool(self.external_id),
        )

        try:
            response = self._get_client().assume_role(**params)
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Failed to assume role",
                role_arn=role_arn,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        credentials = (response or {}).get("Credentials")
        if not credentials:
            raise RoleAssumptionError("AssumeRole response missing credentials", role_arn=role_arn)

        try:
            assumed = AWSCredentials.from_sts(credentials)
        except (KeyError, TypeError, ValueError) as exc:
            raise RoleAssumptionError(
                "AssumeRole response contains incomplete credentials",
                role_arn=role_arn,
                details=f"Missing or invalid field: {exc}",
            ) from exc

        logger.info(
            "Role assumed successfully",
            role_arn=role_arn,
            expires_at=assumed.expiration.isoformat() if assumed.expiration else None,
        )
        return assumed
