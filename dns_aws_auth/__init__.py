"""Multi-account AWS credential resolution for DNS providers."""

from .auth import AWSCredentials, ResolvedConfig, resolve_configs, resolve_profiles, select_config
from .errors import AWSAuthError, ConfigConstructionError, CredentialRetrievalError, RoleAssumptionError
from .session_config import SessionConfig
from .version import __version__

__all__ = [
    "AWSAuthError",
    "AWSCredentials",
    "ConfigConstructionError",
    "CredentialRetrievalError",
    "ResolvedConfig",
    "RoleAssumptionError",
    "SessionConfig",
    "__version__",
    "resolve_configs",
    "resolve_profiles",
    "select_config",
]
