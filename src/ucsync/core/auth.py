"""Authentication helpers for the Unity Catalog REST API.

Credentials are resolved through the Databricks unified authentication
configuration so a static personal access token from the sync config and a
profile from ~/.databrickscfg are handled the same way. The result is a base
URL plus the headers every request has to carry.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping

from databricks.sdk.core import Config

from ucsync.core.errors import UCSyncError


class AuthError(UCSyncError):
    """Raised when Databricks authentication fails."""


@dataclass(frozen=True)
class Credentials:
    """Base URL and request headers for an authenticated workspace."""

    host: str
    headers: Mapping[str, str]


def _format_auth_error(message: str, profile: str | None) -> str:
    """Return a user-friendly auth error message."""
    login_match = re.search(r"databricks auth login ([^\s]+)", message)
    host = login_match.group(1) if login_match else None
    if host:
        cmd = "databricks auth login"
        if profile:
            cmd = f"{cmd} --profile {profile}"
        return (
            "Databricks authentication failed. Your refresh token is invalid.\n"
            f"Re-authenticate with:\n  $ {cmd}"
        )
    return f"Databricks authentication failed: {message}"


def _sanitize_host(host: str | None) -> str | None:
    """
    Normalize a Databricks host.

    - Removes query strings (e.g. '?o=123456789')
    - Removes trailing slashes
    - Adds the https:// scheme when only a hostname is given (the sync config
      traditionally stores bare hostnames)
    """
    if not host:
        return host
    host = host.strip().split("?", 1)[0].rstrip("/")
    if "://" not in host:
        host = f"https://{host}"
    return host


def resolve_credentials(
    host: str | None = None,
    token: str | None = None,
    profile: str | None = None,
) -> Credentials:
    """
    Resolve the workspace URL and auth headers.

    With both `host` and `token` the token is used as a static bearer token.
    Otherwise the missing pieces come from the Databricks profile (or the
    DATABRICKS_* environment variables when no profile is given).

    Raises:
        AuthError: If no usable credentials can be resolved.
    """
    host = _sanitize_host(host)
    try:
        if host and token:
            cfg = Config(host=host, token=token, auth_type="pat")
        elif profile:
            cfg = Config(profile=profile, host=host)
        else:
            cfg = Config(host=host)
        headers = dict(cfg.authenticate())
    except ValueError as exc:
        raise AuthError(_format_auth_error(str(exc), profile)) from exc

    base = _sanitize_host(cfg.host)
    if not base:
        raise AuthError("Databricks authentication failed: no workspace host configured.")
    return Credentials(host=base, headers=headers)
