"""Command-line entry point: ``review-monitor run --config review.yaml``."""

from __future__ import annotations

import logging
import sys

import click
from dotenv import load_dotenv

from review_app.core.config import load_config
from review_app.core.errors import ConfigError, TrackerAPIError
from review_app.core.service import ReviewService

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

logger = logging.getLogger("review_app")


@click.group(context_settings=CONTEXT_SETTINGS)
def cli() -> None:
    """Report items that sit too long in review pipelines."""


@cli.command("run")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default="review.yaml",
    show_default=True,
    help="YAML configuration file.",
)
@click.option("--env-file", type=click.Path(dir_okay=False), default=None, help="Load secrets from this .env file.")
@click.option("--log-level", default=None, help="Override the configured log level.")
def run_cmd(config_path: str, env_file: str | None, log_level: str | None) -> None:
    """Scan the configured targets once and report overdue reviews."""
    load_dotenv(env_file)
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc

    logging.basicConfig(
        level=(log_level or config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting review pipeline duration run")
    try:
        result = ReviewService(config).run()
    except TrackerAPIError as exc:
        logger.exception("Run failed (url=%s status=%s)", exc.url, exc.status)
        sys.exit(1)
    logger.info(
        "Run finished successfully: %s records, notified=%s, dataset=%s",
        len(result.records),
        result.notified,
        result.dataset_path,
    )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
