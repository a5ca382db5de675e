"""Multi-domain credential resolution.

Usage:
    from dns_aws_auth import SessionConfig, resolve_configs, select_config

    configs = resolve_configs(
        SessionConfig(
            region="us-east-1",
            domain_roles_map={
                "example.com": "arn:aws:iam::111111111111:role/dns",
                "example.org": "arn:aws:iam::222222222222:role/dns",
            },
        )
    )
    route53 = select_config(configs, "www.example.com").client("route53")
"""

import dataclasses
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from ..session_config import SessionConfig, normalize_domain
from .chain import CredentialChain, build_credential_chain
from .role_config import ResolvedConfig, RoleScopedConfigFactory
from .sts import STSClient, STSRoleAssumer

logger = structlog.get_logger(__name__)


def collect_role_arns(config: SessionConfig) -> Dict[str, Tuple[str, ...]]:
    """Map each distinct role ARN to the domains routed through it.

    Domain roles come first (sorted by domain), then the global assume role if
    no domain already uses it. Two domains sharing an ARN yield one entry.
    """
    roles: Dict[str, List[str]] = {}
    for domain, role_arn in sorted(config.domain_roles_map.items()):
        roles.setdefault(role_arn, []).append(domain)
    if config.assume_role:
        roles.setdefault(config.assume_role, [])
    return {role_arn: tuple(domains) for role_arn, domains in roles.items()}


def _sts_client_factory(chain: CredentialChain, config: SessionConfig):
    def create_client():
        logger.debug("Creating STS client from base credential chain", region=config.region)
        return chain.boto3_session(config.region).client("sts", config=config.client_config())

    return create_client


def resolve_configs(config: SessionConfig, sts_client: Optional[STSClient] = None) -> List[ResolvedConfig]:
    """Resolve the client configurations needed to cover every configured domain.

    Builds the base chain once and produces one config per distinct role ARN,
    or a single base-identity config when no role is configured. Roles are not
    assumed here; STS errors surface from ``retrieve()`` on the affected config.

    Args:
        config: Session configuration
        sts_client: STS client used for AssumeRole (built from the base chain
            on first use when None)

    Returns:
        Non-empty list of ResolvedConfig

    Raises:
        ConfigConstructionError: If the base credential chain cannot be built
    """
    chain = build_credential_chain(config)

    if sts_client is not None:
        assumer = STSRoleAssumer.from_client(
            sts_client,
            external_id=config.assume_role_external_id,
            duration_seconds=config.assume_role_duration,
        )
    else:
        assumer = STSRoleAssumer(
            _sts_client_factory(chain, config),
            external_id=config.assume_role_external_id,
            duration_seconds=config.assume_role_duration,
        )

    factory = RoleScopedConfigFactory(
        chain,
        assumer,
        region=config.region,
        client_config=config.client_config(),
        session_name=config.role_session_name,
    )

    roles = collect_role_arns(config)
    if not roles:
        configs = [factory.build(default=True)]
    else:
        configs = [
            factory.build(role_arn, domains, default=role_arn == config.assume_role)
            for role_arn, domains in roles.items()
        ]

    logger.info(
        "AWS configurations resolved",
        count=len(configs),
        role_arns=[c.role_arn for c in configs if c.role_arn],
        region=config.region,
        profile=config.profile,
    )
    return configs


def resolve_profiles(
    profiles: Sequence[str],
    config: SessionConfig,
    sts_client: Optional[STSClient] = None,
) -> Dict[str, List[ResolvedConfig]]:
    """Resolve configurations once per shared-credentials profile.

    An empty ``profiles`` list resolves ``config`` as given, keyed by ``""``.
    Any profile failing to resolve aborts the whole call.
    """
    if not profiles:
        return {"": resolve_configs(config, sts_client)}

    resolved: Dict[str, List[ResolvedConfig]] = {}
    for profile in profiles:
        if profile in resolved:
            continue
        resolved[profile] = resolve_configs(dataclasses.replace(config, profile=profile), sts_client)
    return resolved


def select_config(configs: Sequence[ResolvedConfig], domain: str) -> Optional[ResolvedConfig]:
    """Pick the config that should serve DNS name ``domain``.

    The config listing the closest parent domain wins (``a.b.example.com``
    matches ``b.example.com`` before ``example.com``). Names no config lists
    fall back to the default config: the global assume role, or the base
    identity when no role is configured. Returns None when neither exists.
    """
    name = normalize_domain(domain)
    labels = name.split(".")

    by_domain = {d: c for c in configs for d in c.domains}
    for i in range(len(labels)):
        candidate = ".".join(labels[i:])
        if candidate in by_domain:
            return by_domain[candidate]

    for c in configs:
        if c.default:
            return c
    return None
