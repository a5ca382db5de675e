"""Base credential provider chain.

Order: environment variables, then the shared credentials/config file profile,
then the remaining SDK sources (container and instance metadata). Everything
after the environment provider is botocore's default chain for the session;
the only change made to it is keeping the environment provider first even when
a profile is named explicitly.

Nothing here performs network I/O. Sources are probed lazily on the first
``retrieve()``.
"""

from typing import List, Optional

import boto3
import botocore.session
import structlog
from botocore.credentials import CredentialResolver, EnvProvider, create_credential_resolver
from botocore.exceptions import BotoCoreError, ClientError, ConfigNotFound, ConfigParseError, ProfileNotFound

from ..errors import ConfigConstructionError, CredentialRetrievalError
from ..session_config import SessionConfig
from .credentials import AWSCredentials

logger = structlog.get_logger(__name__)


class CredentialChain:
    """Lazily evaluated base credential provider shared by all resolved configs."""

    def __init__(self, session: botocore.session.Session, resolver: CredentialResolver, profile: Optional[str] = None):
        self._session = session
        self._resolver = resolver
        self.profile = profile
        session.register_component("credential_provider", resolver)

    @property
    def methods(self) -> List[str]:
        """Provider names in the order they are probed."""
        return [provider.METHOD for provider in self._resolver.providers]

    @property
    def botocore_session(self) -> botocore.session.Session:
        return self._session

    def retrieve(self) -> AWSCredentials:
        """Return the keys of the first source that yields credentials.

        Raises:
            CredentialRetrievalError: If no source yields credentials or a
                source (such as a profile role) fails to load them
        """
        try:
            credentials = self._session.get_credentials()
            frozen = credentials.get_frozen_credentials() if credentials is not None else None
        except (BotoCoreError, ClientError) as exc:
            raise CredentialRetrievalError(
                f"Failed to load base credentials: {exc}",
                details=f"Chain: {', '.join(self.methods)}",
            ) from exc

        if frozen is None or not frozen.access_key or not frozen.secret_key:
            raise CredentialRetrievalError(
                "no credentials found",
                "Set AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY, configure a shared credentials profile, "
                "or run with an instance or container role",
                details=f"Chain: {', '.join(self.methods)}",
            )

        logger.debug("Base credentials loaded", source=credentials.method, profile=self.profile)
        return AWSCredentials(
            access_key_id=frozen.access_key,
            secret_access_key=frozen.secret_key,
            session_token=frozen.token,
            source=credentials.method,
        )

    def boto3_session(self, region: Optional[str] = None) -> boto3.Session:
        """boto3 session whose clients sign with this chain."""
        return boto3.Session(botocore_session=self._session, region_name=region)


def build_credential_chain(config: SessionConfig) -> CredentialChain:
    """Assemble the base credential chain for a session configuration.

    Args:
        config: Session configuration (profile and region are used)

    Returns:
        CredentialChain that resolves keys on first ``retrieve()``

    Raises:
        ConfigConstructionError: If the credentials or config file is malformed,
            or the requested profile does not exist
    """
    session = botocore.session.Session(profile=config.profile)

    try:
        if config.profile and config.profile not in session.available_profiles:
            raise ConfigConstructionError(
                f"Profile {config.profile!r} not found",
                "Add the profile to the shared credentials file or set AWS_SHARED_CREDENTIALS_FILE",
                details=f"Credentials file: {session.get_config_variable('credentials_file')}",
            )
        resolver = create_credential_resolver(session, region_name=config.region)
    except (ProfileNotFound, ConfigNotFound) as exc:
        raise ConfigConstructionError("AWS profile not found", details=str(exc)) from exc
    except ConfigParseError as exc:
        raise ConfigConstructionError(
            "Unable to parse AWS credentials or config file",
            details=str(exc),
        ) from exc

    # botocore drops the environment provider when a profile is set explicitly
    if EnvProvider.METHOD not in [provider.METHOD for provider in resolver.providers]:
        resolver.providers.insert(0, EnvProvider())

    chain = CredentialChain(session, resolver, profile=config.profile)
    logger.debug("Credential chain built", profile=config.profile, methods=chain.methods)
    return chain
