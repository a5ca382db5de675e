#!/usr/bin/env python3
"""
AWS credential resolution CLI

Inspect which AWS configurations a DNS provider would use for a set of
options, and which role serves a given DNS name.

Commands:
    resolve     Resolve configurations and optionally retrieve credentials
    route       Show the configuration that serves a DNS name

Options not given on the command line fall back to EXTERNAL_DNS_AWS_*
environment variables (a .env file in the working directory is loaded first).

Usage:
    dns-aws-auth resolve --domain-role example.com=arn:aws:iam::123456789012:role/dns --retrieve
    dns-aws-auth route www.example.com --assume-role arn:aws:iam::123456789012:role/dns
"""

import dataclasses
import json
import sys
from typing import Any, Dict, Optional, Tuple

import click
from dotenv import load_dotenv

from .auth import ResolvedConfig, resolve_configs, select_config
from .errors import AWSAuthError
from .logging_config import configure_logging
from .session_config import SessionConfig, parse_domain_roles
from .version import __version__


def format_json(data: Any, pretty: bool = True) -> str:
    """Format data as JSON string"""
    if pretty:
        return json.dumps(data, indent=2, ensure_ascii=False)
    return json.dumps(data, ensure_ascii=False)


def handle_error(error: Exception, verbose: bool = False) -> None:
    """Handle and format errors"""
    if verbose:
        click.echo(f"Error: {type(error).__name__}: {error}", err=True)
        import traceback

        traceback.print_exc()
    elif isinstance(error, AWSAuthError):
        click.echo(error.format(), err=True)
    else:
        click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def session_options(func):
    """Options shared by every command that resolves configurations."""
    options = [
        click.option("--profile", help="Shared credentials file profile"),
        click.option("--region", help="AWS region for every configuration"),
        click.option("--assume-role", help="Role ARN applied globally"),
        click.option("--assume-role-external-id", help="ExternalId sent with AssumeRole"),
        click.option(
            "--domain-role",
            "domain_roles",
            multiple=True,
            metavar="DOMAIN=ARN",
            help="Route a DNS domain through its own role (repeatable)",
        ),
        click.option("--api-retries", type=int, help="Total attempts per AWS API call"),
        click.option("--verbose", "-v", is_flag=True, help="Verbose error output"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_session_config(
    profile: Optional[str] = None,
    region: Optional[str] = None,
    assume_role: Optional[str] = None,
    assume_role_external_id: Optional[str] = None,
    domain_roles: Tuple[str, ...] = (),
    api_retries: Optional[int] = None,
) -> SessionConfig:
    """Merge command-line options over the environment configuration."""
    base = SessionConfig.from_env()
    overrides: Dict[str, Any] = {
        "profile": profile,
        "region": region,
        "assume_role": assume_role,
        "assume_role_external_id": assume_role_external_id,
        "api_retries": api_retries,
    }
    if domain_roles:
        overrides["domain_roles_map"] = parse_domain_roles(",".join(domain_roles))
    return dataclasses.replace(base, **{k: v for k, v in overrides.items() if v is not None})


def describe_config(config: ResolvedConfig, retrieve: bool = False) -> Dict[str, Any]:
    """JSON-friendly summary of a resolved configuration (never includes secrets)."""
    summary: Dict[str, Any] = {
        "role_arn": config.role_arn,
        "domains": list(config.domains),
        "default": config.default,
        "region": config.region,
    }
    if retrieve:
        try:
            credentials = config.credentials.retrieve()
        except AWSAuthError as e:
            summary["error"] = e.message
        else:
            summary["access_key_id"] = credentials.masked_access_key()
            summary["source"] = credentials.source
            summary["expiration"] = credentials.expiration.isoformat() if credentials.expiration else None
    return summary


@click.group()
@click.version_option(version=__version__, prog_name="dns-aws-auth")
def cli():
    """
    AWS credential resolution for DNS providers

    Resolves one AWS configuration per distinct IAM role so that each DNS
    domain is managed through its own least-privilege identity.
    """
    load_dotenv()
    configure_logging()


@cli.command()
@session_options
@click.option("--retrieve/--no-retrieve", default=False, help="Retrieve credentials for each configuration")
@click.option("--pretty/--compact", default=True, help="Pretty print JSON output", show_default=True)
def resolve(
    profile: Optional[str],
    region: Optional[str],
    assume_role: Optional[str],
    assume_role_external_id: Optional[str],
    domain_roles: Tuple[str, ...],
    api_retries: Optional[int],
    verbose: bool,
    retrieve: bool,
    pretty: bool,
):
    """Resolve AWS configurations for the given options."""
    try:
        config = build_session_config(profile, region, assume_role, assume_role_external_id, domain_roles, api_retries)
        configs = resolve_configs(config)
    except AWSAuthError as e:
        handle_error(e, verbose)
        return

    click.echo(format_json([describe_config(c, retrieve=retrieve) for c in configs], pretty=pretty))


@cli.command()
@click.argument("domain")
@session_options
def route(
    domain: str,
    profile: Optional[str],
    region: Optional[str],
    assume_role: Optional[str],
    assume_role_external_id: Optional[str],
    domain_roles: Tuple[str, ...],
    api_retries: Optional[int],
    verbose: bool,
):
    """Show which configuration serves DOMAIN."""
    try:
        config = build_session_config(profile, region, assume_role, assume_role_external_id, domain_roles, api_retries)
        configs = resolve_configs(config)
    except AWSAuthError as e:
        handle_error(e, verbose)
        return

    selected = select_config(configs, domain)
    if selected is None:
        click.echo(f"No configuration serves {domain}", err=True)
        sys.exit(1)

    click.echo(format_json({"domain": domain, **describe_config(selected)}))


if __name__ == "__main__":
    cli()
