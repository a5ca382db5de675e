"""Session configuration for AWS credential resolution.

A ``SessionConfig`` is the single input of the resolver. It can be built
directly (library use) or from ``EXTERNAL_DNS_AWS_*`` environment variables
(container deployments).
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

import structlog
from botocore.config import Config as BotocoreConfig

from .errors import ConfigConstructionError

logger = structlog.get_logger(__name__)

DEFAULT_API_RETRIES = 3
DEFAULT_ASSUME_ROLE_DURATION = 3600  # 1 hour (AWS default)
MIN_ASSUME_ROLE_DURATION = 900
MAX_ASSUME_ROLE_DURATION = 43200

ENV_PREFIX = "EXTERNAL_DNS_AWS_"


def normalize_domain(domain: str) -> str:
    """Lower-case a DNS name and drop the trailing root dot."""
    return domain.strip().lower().rstrip(".")


def parse_domain_roles(value: Optional[str]) -> Dict[str, str]:
    """Parse ``domain=arn[,domain=arn...]`` into a domain to role ARN mapping.

    Raises:
        ConfigConstructionError: If a pair is malformed or a domain is mapped
            to two different roles
    """
    roles: Dict[str, str] = {}
    if not value or not value.strip():
        return roles

    for pair in value.split(","):
        if not pair.strip():
            continue
        domain, sep, role_arn = pair.partition("=")
        domain = normalize_domain(domain)
        role_arn = role_arn.strip()
        if not sep or not domain or not role_arn:
            raise ConfigConstructionError(
                f"Invalid domain role mapping: {pair.strip()!r}",
                "Use the form domain=role-arn, e.g. example.com=arn:aws:iam::123456789012:role/dns",
            )
        if roles.get(domain, role_arn) != role_arn:
            raise ConfigConstructionError(
                f"Domain {domain} is mapped to more than one role",
                details=f"Roles: {roles[domain]}, {role_arn}",
            )
        roles[domain] = role_arn
    return roles


def _parse_int(name: str, value: Optional[str], default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError as exc:
        raise ConfigConstructionError(f"{name} must be an integer, got {value!r}") from exc


def _optional(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


@dataclass
class SessionConfig:
    """User-supplied AWS session options.

    ``assume_role`` and ``domain_roles_map`` are independent: either, both or
    neither may be set. Every distinct role ARN produces its own resolved
    configuration.

    Attributes:
        profile: Shared credentials file profile (None for the file's default)
        region: AWS region attached to every produced configuration
        assume_role: Role ARN applied globally
        domain_roles_map: DNS domain name to role ARN
        assume_role_external_id: ExternalId sent with every AssumeRole call
        api_retries: Total attempts (first call included) of the SDK standard retry mode
        role_session_name: Fixed RoleSessionName (generated when None)
        assume_role_duration: Requested lifetime of assumed credentials, seconds
    """

    profile: Optional[str] = None
    region: Optional[str] = None
    assume_role: Optional[str] = None
    domain_roles_map: Dict[str, str] = field(default_factory=dict)
    assume_role_external_id: Optional[str] = None
    api_retries: int = DEFAULT_API_RETRIES
    role_session_name: Optional[str] = None
    assume_role_duration: int = DEFAULT_ASSUME_ROLE_DURATION

    def __post_init__(self):
        self.profile = _optional(self.profile)
        self.region = _optional(self.region)
        self.assume_role = _optional(self.assume_role)
        self.assume_role_external_id = _optional(self.assume_role_external_id)
        self.role_session_name = _optional(self.role_session_name)
        self.domain_roles_map = self._normalize_domain_roles(self.domain_roles_map or {})
        self.validate()

    @staticmethod
    def _normalize_domain_roles(domain_roles: Mapping[str, str]) -> Dict[str, str]:
        normalized: Dict[str, str] = {}
        for domain, role_arn in domain_roles.items():
            key = normalize_domain(domain or "")
            if not key:
                raise ConfigConstructionError("Domain role mapping contains an empty domain name")
            role_arn = (role_arn or "").strip()
            if not role_arn:
                raise ConfigConstructionError(
                    f"Domain {key} is mapped to an empty role ARN",
                    "Remove the domain from the mapping to use the default credentials for it",
                )
            if normalized.get(key, role_arn) != role_arn:
                raise ConfigConstructionError(f"Domain {key} is mapped to more than one role")
            normalized[key] = role_arn
        return normalized

    def validate(self) -> None:
        """Validate option ranges.

        Raises:
            ConfigConstructionError: If an option is out of range
        """
        if self.api_retries < 1:
            raise ConfigConstructionError(f"api_retries must be at least 1, got {self.api_retries}")
        if not MIN_ASSUME_ROLE_DURATION <= self.assume_role_duration <= MAX_ASSUME_ROLE_DURATION:
            raise ConfigConstructionError(
                f"assume_role_duration must be between {MIN_ASSUME_ROLE_DURATION} and "
                f"{MAX_ASSUME_ROLE_DURATION} seconds, got {self.assume_role_duration}"
            )

    def client_config(self) -> BotocoreConfig:
        """Botocore client config carrying region, retry policy and timeouts."""
        return BotocoreConfig(
            region_name=self.region,
            retries={"total_max_attempts": self.api_retries, "mode": "standard"},
            connect_timeout=5,
            read_timeout=10,
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SessionConfig":
        """Build a configuration from ``EXTERNAL_DNS_AWS_*`` environment variables.

        Environment variables:
            - EXTERNAL_DNS_AWS_PROFILE: Shared credentials file profile
            - EXTERNAL_DNS_AWS_REGION: AWS region (falls back to AWS_REGION)
            - EXTERNAL_DNS_AWS_ASSUME_ROLE: Global role ARN
            - EXTERNAL_DNS_AWS_ASSUME_ROLE_EXTERNAL_ID: ExternalId for AssumeRole
            - EXTERNAL_DNS_AWS_API_RETRIES: SDK total attempts per call (default: 3)
            - EXTERNAL_DNS_AWS_DOMAIN_ROLES: domain=arn,domain=arn
            - EXTERNAL_DNS_AWS_ROLE_SESSION_NAME: Fixed RoleSessionName
        """
        env = os.environ if environ is None else environ

        config = cls(
            profile=env.get(f"{ENV_PREFIX}PROFILE"),
            region=env.get(f"{ENV_PREFIX}REGION") or env.get("AWS_REGION"),
            assume_role=env.get(f"{ENV_PREFIX}ASSUME_ROLE"),
            domain_roles_map=parse_domain_roles(env.get(f"{ENV_PREFIX}DOMAIN_ROLES")),
            assume_role_external_id=env.get(f"{ENV_PREFIX}ASSUME_ROLE_EXTERNAL_ID"),
            api_retries=_parse_int(
                f"{ENV_PREFIX}API_RETRIES", env.get(f"{ENV_PREFIX}API_RETRIES"), DEFAULT_API_RETRIES
            ),
            role_session_name=env.get(f"{ENV_PREFIX}ROLE_SESSION_NAME"),
        )

        logger.debug(
            "Session configuration loaded from environment",
            has_profile=bool(config.profile),
            region=config.region,
            has_assume_role=bool(config.assume_role),
            domain_count=len(config.domain_roles_map),
        )
        return config
