from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import click
from google.auth.exceptions import TransportError
from googleapiclient.errors import HttpError
from rich.console import Console
from rich.table import Table

from gmail_autoreply.services.auth_service import AuthorizationError, AuthService
from gmail_autoreply.services.gmail_service import GmailService
from gmail_autoreply.services.persistence_service import FileCredentialStore
from gmail_autoreply.services.poller import Poller
from gmail_autoreply.services.responder import ReplyTemplate, Responder
from gmail_autoreply.services.scheduler import AutoReplyScheduler, TickReport
from gmail_autoreply.services.statistics_service import COUNTERS, StatisticsService
from gmail_autoreply.utils.config import AppConfig, ConfigurationError, load_client_config, load_config
from gmail_autoreply.utils.logger import configure_logging

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AppContext:
    config: AppConfig
    stats: StatisticsService
    console: Console
    gmail: Optional[GmailService] = None


def build_context(env_file: str) -> AppContext:
    config = load_config(env_file)
    configure_logging(config.log_dir, config.log_level)
    return AppContext(config=config, stats=StatisticsService(config.stats_file), console=Console())


def connect(app: AppContext) -> GmailService:
    """Authenticate once and keep the Gmail client on the context."""

    if app.gmail is None:
        client_config = load_client_config(app.config.credentials_file)
        auth_service = AuthService(client_config, FileCredentialStore(app.config.token_file))
        app.gmail = GmailService(app.config.user_id, auth_service)
    return app.gmail


def build_scheduler(app: AppContext) -> AutoReplyScheduler:
    gmail = connect(app)
    label_id = gmail.ensure_label(app.config.label_name)
    template = ReplyTemplate(subject=app.config.reply_subject, body=app.config.reply_body)
    return AutoReplyScheduler(
        poller=Poller(gmail, app.config.label_name),
        responder=Responder(gmail, label_id, template),
        min_seconds=app.config.poll_min_seconds,
        max_seconds=app.config.poll_max_seconds,
        stats=app.stats,
    )


@click.group()
@click.option("--env-file", default=".env", show_default=True, help="Path to the .env file")
@click.pass_context
def cli(ctx: click.Context, env_file: str) -> None:
    """Send one automatic reply to every unread Gmail thread."""

    try:
        ctx.obj = build_context(env_file)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command("run")
@click.pass_obj
def run(app: AppContext) -> None:
    """Poll the inbox on a randomized interval until interrupted."""

    scheduler = _startup(app)
    app.console.print(
        f"Auto-reply running every {app.config.poll_min_seconds}-{app.config.poll_max_seconds}s. "
        "Press Ctrl+C to stop."
    )
    scheduler.run_forever()
    app.console.print("Scheduler stopped.")


@cli.command("once")
@click.pass_obj
def once(app: AppContext) -> None:
    """Run a single poll-and-reply pass and print what happened."""

    scheduler = _startup(app)
    report = scheduler.tick()
    app.console.print(_build_report_table(report))


@cli.command("create-label")
@click.pass_obj
def create_label(app: AppContext) -> None:
    """Create the auto-reply label if it does not exist."""

    gmail = _guarded(app, connect)
    label_id = gmail.ensure_label(app.config.label_name)
    app.console.print(f"Label {app.config.label_name} is ready (id: {label_id}).")


@cli.command("stats")
@click.pass_obj
def stats(app: AppContext) -> None:
    """Display local auto-reply statistics."""

    snapshot = app.stats.snapshot()
    if not snapshot:
        app.console.print("No stats recorded yet.")
        return

    table = Table(title="Auto-reply stats")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    for name in COUNTERS:
        table.add_row(name.replace("_", " ").capitalize(), str(snapshot.get(name, 0)))
    table.add_row("Last tick", snapshot.get("last_tick_at", "-"))
    app.console.print(table)


def main() -> None:
    cli(standalone_mode=True)


def _startup(app: AppContext) -> AutoReplyScheduler:
    return _guarded(app, build_scheduler)


def _guarded(app: AppContext, factory):
    try:
        return factory(app)
    except (ConfigurationError, AuthorizationError, HttpError, TransportError) as exc:
        LOGGER.error("Startup failed: %s", exc)
        raise click.ClickException(str(exc)) from exc


def _build_report_table(report: TickReport) -> Table:
    table = Table(title="Auto-reply pass")
    table.add_column("Result")
    table.add_column("Threads", overflow="fold")
    if report.poll_failed:
        table.add_row("[red]Poll failed[/red]", "see log")
        return table
    table.add_row("Sent", ", ".join(report.sent) or "-")
    table.add_row("Already replied", ", ".join(report.already_replied) or "-")
    table.add_row("No recipient", ", ".join(report.no_recipient) or "-")
    table.add_row("Failed", ", ".join(report.failed) or "-")
    return table


if __name__ == "__main__":
    main()
