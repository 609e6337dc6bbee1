"""CLI interface for the retools change engine."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Annotated

import structlog
import typer
from pydantic import ValidationError

from retools import __version__
from retools.config import RetoolsConfig
from retools.context.extractor import extract_context
from retools.exceptions import RetoolsError
from retools.notify.webhook import WebhookNotifier, WebhookStatus, build_payload
from retools.runner import create_runner
from retools.settings import RetoolsSettings


def configure_logging(verbose: bool = False) -> None:
    """Configure structlog for CLI output."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if verbose else logging.INFO),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


configure_logging()

logger = structlog.get_logger()

app = typer.Typer(
    name="retools",
    help="Apply AI-generated changes to a repository and report job status",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"retools version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging."),
    ] = False,
) -> None:
    """retools - repository change engine."""
    if verbose:
        configure_logging(verbose=True)


def _load_config(working_dir: Path, config: Path | None) -> RetoolsConfig:
    config_path = config
    if config_path is None:
        default_config = working_dir / "retools.yaml"
        if default_config.exists():
            config_path = default_config
    if config_path is None:
        return RetoolsConfig.default()
    try:
        return RetoolsConfig.load(config_path)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: invalid config {config_path}: {e}", err=True)
        raise typer.Exit(1) from e


@app.command()
def generate(
    prompt: Annotated[
        str,
        typer.Option("--prompt", "-p", help="Change request (prefix with @ to read from a file)"),
    ],
    working_dir: Annotated[
        Path,
        typer.Option(
            "--working-dir",
            "-d",
            help="Repository working tree to modify",
            exists=True,
            file_okay=False,
            resolve_path=True,
        ),
    ],
    fix_mode: Annotated[
        bool,
        typer.Option("--fix-mode", help="Treat the prompt as a build failure and make minimal fixes"),
    ] = False,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to retools.yaml config file",
            exists=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ] = None,
) -> None:
    """Generate changes for a prompt and apply them to the working tree."""
    log = logger.bind(command="generate")

    if prompt.startswith("@"):
        prompt_path = Path(prompt[1:])
        if not prompt_path.is_file():
            typer.echo(f"Error: Prompt file not found: {prompt_path}", err=True)
            raise typer.Exit(1)
        prompt = prompt_path.read_text()

    settings = RetoolsSettings()
    if not settings.anthropic_api_key:
        typer.echo("Error: ANTHROPIC_API_KEY environment variable not set", err=True)
        raise typer.Exit(1)

    cfg = _load_config(working_dir, config)
    log.info("Starting retools generation", working_dir=str(working_dir), prompt=prompt[:100])

    try:
        runner = create_runner(working_dir, api_key=settings.anthropic_api_key, config=cfg)
        result = runner.run(prompt, fix_mode=fix_mode)
    except RetoolsError as e:
        log.error("Generation failed", error=str(e), error_type=type(e).__name__)
        raise typer.Exit(1) from e

    typer.echo(typer.style(f"Applied {result.applied} file modifications", fg=typer.colors.GREEN))


@app.command()
def notify(
    job_id: Annotated[str, typer.Option("--job-id", help="Job identifier")],
    status: Annotated[WebhookStatus, typer.Option("--status", help="Job status")],
    webhook_url: Annotated[str, typer.Option("--webhook-url", help="Webhook endpoint")],
    message: Annotated[str | None, typer.Option("--message", help="Status message")] = None,
    pr_url: Annotated[str | None, typer.Option("--pr-url", help="Pull request URL")] = None,
    pr_number: Annotated[int | None, typer.Option("--pr-number", help="Pull request number")] = None,
    github_run_url: Annotated[
        str | None,
        typer.Option("--github-run-url", help="Workflow run URL (derived from the CI environment if omitted)"),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to retools.yaml config file", exists=True, dir_okay=False),
    ] = None,
) -> None:
    """Send a signed status webhook. Delivery failures never fail the command."""
    settings = RetoolsSettings()
    if not settings.webhook_secret:
        typer.echo("Error: RETOOLS_WEBHOOK_SECRET environment variable not set", err=True)
        raise typer.Exit(1)

    cfg = _load_config(Path.cwd(), config)

    try:
        payload = build_payload(
            job_id,
            status,
            message=message,
            run_id=settings.github_run_id,
            run_url=github_run_url or settings.default_run_url(),
            pr_url=pr_url,
            pr_number=pr_number,
        )
        notifier = WebhookNotifier(webhook_url, settings.webhook_secret, cfg.webhook)
    except (ValidationError, RetoolsError) as e:
        logger.error("Invalid webhook request", job_id=job_id, error_type=type(e).__name__)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    outcome = notifier.notify(payload)
    if not outcome.delivered:
        logger.warning("Webhook not delivered, continuing", error=outcome.error)


@app.command()
def context(
    working_dir: Annotated[
        Path,
        typer.Option(
            "--working-dir",
            "-d",
            help="Repository working tree to scan",
            exists=True,
            file_okay=False,
            resolve_path=True,
        ),
    ],
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to retools.yaml config file", exists=True, dir_okay=False),
    ] = None,
) -> None:
    """Print the generation context extracted from a working tree as JSON."""
    cfg = _load_config(working_dir, config)
    typer.echo(extract_context(working_dir, cfg.context).to_json(indent=2))


if __name__ == "__main__":
    app()
