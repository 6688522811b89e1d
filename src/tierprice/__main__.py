"""Module entry point: run the tier price CLI or serve a catalog over HTTP."""

import logging
from pathlib import Path
from typing import Optional

import typer

from tierprice.api import create_app
from tierprice.cli import app as cli_app
from tierprice.config import TierPriceConfig, get_config
from tierprice.dependencies import build_default_resources

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Tier price reconciliation over a catalog snapshot (CLI) or HTTP (API).",
    no_args_is_help=False,
)
app.add_typer(cli_app, name="", help="Tier price CLI commands.")


def _serving_config(
    snapshot: Optional[Path], link_field: Optional[str]
) -> TierPriceConfig:
    overrides: dict[str, object] = {}
    if snapshot is not None:
        overrides["snapshot_path"] = snapshot
    if link_field is not None:
        overrides["link_field"] = link_field
    config = get_config().model_copy(update=overrides)
    config.validate_config()
    return config


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    mode: str = typer.Option(
        "cli",
        "--mode",
        help="Run mode: cli (default) or api",
    ),
    snapshot: Optional[Path] = typer.Option(
        None,
        "--snapshot",
        help="Catalog snapshot served in API mode (overrides SNAPSHOT_PATH)",
        dir_okay=False,
    ),
    link_field: Optional[str] = typer.Option(
        None,
        "--link-field",
        help="Link column for an API catalog started without a snapshot",
    ),
) -> None:
    """Tier price reconciliation over a catalog snapshot (CLI) or HTTP (API)."""
    if mode not in ("cli", "api"):
        raise typer.BadParameter(f"unknown mode '{mode}'", param_hint="--mode")

    if mode == "api":
        import uvicorn

        try:
            config = _serving_config(snapshot, link_field)
        except ValueError as e:
            typer.echo(str(e), err=True)
            raise typer.Exit(code=2)

        resources = build_default_resources(config)
        logger.info(
            "Serving tier prices from %s (link field '%s')",
            config.snapshot_path or "an empty catalog",
            resources.repository.link_field_name,
        )
        uvicorn.run(
            create_app(resources),
            host=config.api_host,
            port=config.api_port,
            reload=False,
        )
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


if __name__ == "__main__":
    app()
