"""Application context management for the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ucsync.cli.common.exits import exit_from_exc
from ucsync.core.auth import AuthError, Credentials, resolve_credentials
from ucsync.core.config import ConfigError, SyncConfig, load_config
from ucsync.core.crawler import DEFAULT_MAX_IN_FLIGHT


@dataclass
class SyncAppContext:
    """Everything a sync or plan command needs before it starts crawling."""

    config: SyncConfig
    credentials: Credentials
    max_in_flight: int


def build_sync_context(
    config_path: Path,
    profile: str | None,
    num_requests: int | None,
) -> SyncAppContext:
    """Load the config, resolve credentials and pick the concurrency cap.

    `--num-requests` wins over `num_requests` in the config file, which wins
    over the crawler default.
    """
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        exit_from_exc(exc, message=f"Invalid config: {exc}", code=1)

    try:
        credentials = resolve_credentials(config.host, config.pat, profile)
    except AuthError as exc:
        exit_from_exc(exc, message=str(exc), code=1)

    max_in_flight = num_requests or config.num_requests or DEFAULT_MAX_IN_FLIGHT
    return SyncAppContext(
        config=config,
        credentials=credentials,
        max_in_flight=max_in_flight,
    )
