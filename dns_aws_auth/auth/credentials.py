"""Credential value types shared by the chain, STS and role-scoped providers."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional, Protocol


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class AWSCredentials:
    """A consistent snapshot of access keys.

    Attributes:
        access_key_id: AWS access key ID
        secret_access_key: AWS secret access key
        session_token: Session token for temporary credentials
        expiration: Absolute expiry (tz-aware), None for long-lived keys
        source: Name of the provider that produced the keys
    """

    access_key_id: str
    secret_access_key: str
    session_token: Optional[str] = None
    expiration: Optional[datetime] = None
    source: str = ""

    @classmethod
    def from_sts(cls, credentials: Mapping[str, Any], source: str = "sts-assume-role") -> "AWSCredentials":
        """Build from the ``Credentials`` block of an STS AssumeRole response."""
        expiration = credentials["Expiration"]
        if isinstance(expiration, str):
            expiration = datetime.fromisoformat(expiration.replace("Z", "+00:00"))
        return cls(
            access_key_id=credentials["AccessKeyId"],
            secret_access_key=credentials["SecretAccessKey"],
            session_token=credentials.get("SessionToken"),
            expiration=_as_aware(expiration),
            source=source,
        )

    def expires_within(self, seconds: float, now: Optional[datetime] = None) -> bool:
        """True if the keys expire less than ``seconds`` from ``now``."""
        if self.expiration is None:
            return False
        now = now or datetime.now(timezone.utc)
        return self.expiration - _as_aware(now) < timedelta(seconds=seconds)

    def to_refresh_metadata(self) -> Dict[str, Optional[str]]:
        """Metadata dict in the shape botocore refreshable credentials expect."""
        return {
            "access_key": self.access_key_id,
            "secret_key": self.secret_access_key,
            "token": self.session_token,
            "expiry_time": self.expiration.isoformat() if self.expiration else None,
        }

    def masked_access_key(self) -> str:
        if len(self.access_key_id) <= 4:
            return "****"
        return f"{'*' * (len(self.access_key_id) - 4)}{self.access_key_id[-4:]}"

    def __repr__(self) -> str:
        return (
            f"AWSCredentials(access_key_id={self.masked_access_key()!r}, source={self.source!r}, "
            f"expiration={self.expiration!r})"
        )


class CredentialsProvider(Protocol):
    """Anything that yields currently valid access keys on demand."""

    def retrieve(self) -> AWSCredentials: ...
