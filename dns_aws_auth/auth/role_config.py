"""Role-scoped client configurations.

A ``ResolvedConfig`` bundles a boto3 session, its credential provider, region
and retry settings. Without a role it signs with the base chain. With a role
its provider assumes the role on the first ``retrieve()``, caches the
temporary credentials and re-assumes once they come within ``expiry_window``
seconds of expiring.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Tuple

import boto3
import botocore.session
import structlog
from botocore.config import Config as BotocoreConfig
from botocore.credentials import CredentialProvider, CredentialResolver, DeferredRefreshableCredentials
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import RoleAssumptionError
from .chain import CredentialChain
from .credentials import AWSCredentials, CredentialsProvider
from .sts import RoleAssumer

logger = structlog.get_logger(__name__)

# Refresh if expiring within 5 minutes
DEFAULT_EXPIRY_WINDOW = 5 * 60

STATE_UNASSUMED = "unassumed"
STATE_VALID = "valid"
STATE_EXPIRED = "expired"


class AssumeRoleCredentialsProvider:
    """Credential provider backed by STS AssumeRole with a single-flight cache.

    Concurrent ``retrieve()`` calls during a cache miss wait on one lock and
    share the result of a single AssumeRole call. Cached credentials are an
    immutable snapshot, so readers never see a half-updated key set.
    """

    METHOD = "sts-assume-role"

    def __init__(
        self,
        assumer: RoleAssumer,
        role_arn: str,
        session_name: Optional[str] = None,
        expiry_window: float = DEFAULT_EXPIRY_WINDOW,
    ):
        self._assumer = assumer
        self.role_arn = role_arn
        self.session_name = session_name
        self.expiry_window = expiry_window
        self._cached: Optional[AWSCredentials] = None
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        cached = self._cached
        if cached is None:
            return STATE_UNASSUMED
        if cached.expires_within(self.expiry_window):
            return STATE_EXPIRED
        return STATE_VALID

    def _usable(self, cached: Optional[AWSCredentials]) -> bool:
        return cached is not None and not cached.expires_within(self.expiry_window)

    def retrieve(self) -> AWSCredentials:
        """Return valid temporary credentials, assuming the role if needed.

        Raises:
            RoleAssumptionError: If the role cannot be assumed
        """
        cached = self._cached
        if self._usable(cached):
            return cached

        with self._lock:
            # Another caller may have refreshed while we waited
            cached = self._cached
            if self._usable(cached):
                return cached

            logger.debug("Refreshing role credentials", role_arn=self.role_arn, state=self.state)
            try:
                fresh = self._assumer.assume_role(self.role_arn, self.session_name)
            except (BotoCoreError, ClientError) as exc:
                raise RoleAssumptionError(
                    f"Unable to assume role {self.role_arn}: {exc}",
                    role_arn=self.role_arn,
                    suggestion="Check that the base identity is allowed sts:AssumeRole on this role",
                ) from exc

            if fresh.expires_within(0):
                raise RoleAssumptionError(
                    f"Role {self.role_arn} returned credentials that are already expired",
                    role_arn=self.role_arn,
                )

            self._cached = fresh
            return fresh

    def botocore_credentials(self) -> DeferredRefreshableCredentials:
        """Expose this provider to boto3 clients, sharing the same cache."""
        return DeferredRefreshableCredentials(
            refresh_using=lambda: self.retrieve().to_refresh_metadata(),
            method=self.METHOD,
        )


class _FixedCredentialSource(CredentialProvider):
    """Single-entry botocore provider returning prebuilt credentials."""

    METHOD = AssumeRoleCredentialsProvider.METHOD

    def __init__(self, credentials):
        super().__init__()
        self._credentials = credentials

    def load(self):
        return self._credentials


@dataclass
class ResolvedConfig:
    """A finalized AWS client configuration.

    Attributes:
        credentials: Provider whose ``retrieve()`` yields current keys
        session: boto3 session signing with ``credentials``
        region: Region attached to every client
        role_arn: Role this config assumes (None for the base identity)
        domains: DNS domains routed through this config
        default: Serves domains that no config lists
        client_config: botocore config with retry policy and timeouts
    """

    credentials: CredentialsProvider
    session: boto3.Session
    region: Optional[str] = None
    role_arn: Optional[str] = None
    domains: Tuple[str, ...] = ()
    default: bool = False
    client_config: Optional[BotocoreConfig] = field(default=None, repr=False)

    def client(self, service_name: str, **kwargs: Any):
        """Create a boto3 client for ``service_name`` from this config."""
        config = kwargs.pop("config", None)
        if self.client_config is not None:
            config = self.client_config.merge(config) if config is not None else self.client_config
        return self.session.client(service_name, config=config, **kwargs)


class RoleScopedConfigFactory:
    """Builds ``ResolvedConfig`` objects on top of one shared base chain."""

    def __init__(
        self,
        chain: CredentialChain,
        assumer: RoleAssumer,
        region: Optional[str] = None,
        client_config: Optional[BotocoreConfig] = None,
        session_name: Optional[str] = None,
        expiry_window: float = DEFAULT_EXPIRY_WINDOW,
    ):
        self.chain = chain
        self.assumer = assumer
        self.region = region
        self.client_config = client_config
        self.session_name = session_name
        self.expiry_window = expiry_window

    def build(
        self,
        role_arn: Optional[str] = None,
        domains: Iterable[str] = (),
        default: bool = False,
    ) -> ResolvedConfig:
        """Build a config for ``role_arn``, or for the base identity when empty.

        No STS call is made here; the role is assumed on first ``retrieve()``.
        """
        domains = tuple(domains)

        if not role_arn:
            logger.debug("Using base credential chain (no role ARN provided)", domains=domains)
            return ResolvedConfig(
                credentials=self.chain,
                session=self.chain.boto3_session(self.region),
                region=self.region,
                domains=domains,
                default=default,
                client_config=self.client_config,
            )

        provider = AssumeRoleCredentialsProvider(
            self.assumer,
            role_arn,
            session_name=self.session_name,
            expiry_window=self.expiry_window,
        )

        botocore_session = botocore.session.Session(profile=self.chain.profile)
        botocore_session.register_component(
            "credential_provider",
            CredentialResolver([_FixedCredentialSource(provider.botocore_credentials())]),
        )
        session = boto3.Session(botocore_session=botocore_session, region_name=self.region)

        logger.debug("Role-scoped configuration built", role_arn=role_arn, domains=domains, region=self.region)
        return ResolvedConfig(
            credentials=provider,
            session=session,
            region=self.region,
            role_arn=role_arn,
            domains=domains,
            default=default,
            client_config=self.client_config,
        )
