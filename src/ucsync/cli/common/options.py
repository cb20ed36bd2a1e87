"""Common CLI options for the CLI."""

import typer

ConfigOpt = typer.Option(
    ...,
    "--config",
    "-c",
    help="Path to the sync config (YAML)",
    dir_okay=False,
)

ProfileOpt = typer.Option(
    None,
    "--profile",
    "-p",
    help="Databricks CLI profile (from ~/.databrickscfg), used when host/pat are not in the config",
)

NumRequestsOpt = typer.Option(
    None,
    "--num-requests",
    "-n",
    help="Maximum number of concurrent API requests (default: config value, else 10)",
)

StrictOpt = typer.Option(
    False,
    "--strict",
    help="Fail when any part of a catalog could not be crawled",
)

TreeOpt = typer.Option(
    False,
    "--tree",
    help="Print the plan tree instead of SQL statements",
)

LogLevelOpt = typer.Option(
    "WARNING",
    "--log-level",
    help="Log level for diagnostics on stderr (DEBUG, INFO, WARNING, ERROR)",
)

VerboseOpt = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Shortcut for --log-level INFO",
)

