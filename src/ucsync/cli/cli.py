"""CLI application for Unity Catalog catalog synchronization."""

import typer

from ucsync.cli.commands.sync import plan, sync

app = typer.Typer(
    help="ucsync - keep Unity Catalog catalogs in line with their pinned catalogs",
    no_args_is_help=True,
)

app.command("sync")(sync)
app.command("plan")(plan)


if __name__ == "__main__":
    app()
