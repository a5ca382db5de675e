"""AWS credential resolution: base chain, STS role assumption, per-domain configs."""

from .chain import CredentialChain, build_credential_chain
from .credentials import AWSCredentials, CredentialsProvider
from .resolver import collect_role_arns, resolve_configs, resolve_profiles, select_config
from .role_config import AssumeRoleCredentialsProvider, ResolvedConfig, RoleScopedConfigFactory
from .sts import RoleAssumer, STSClient, STSRoleAssumer, generate_session_name

__all__ = [
    "AWSCredentials",
    "AssumeRoleCredentialsProvider",
    "CredentialChain",
    "CredentialsProvider",
    "ResolvedConfig",
    "RoleAssumer",
    "RoleScopedConfigFactory",
    "STSClient",
    "STSRoleAssumer",
    "build_credential_chain",
    "collect_role_arns",
    "generate_session_name",
    "resolve_configs",
    "resolve_profiles",
    "select_config",
]
