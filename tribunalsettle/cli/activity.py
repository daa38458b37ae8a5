"""
tribunalsettle/cli/activity.py

tribunalsettle activity: reconstruct a user's history from exported
transactions.

Usage:
    tribunalsettle activity <owner> --history history.json
    tribunalsettle activity <owner> --history history.json --limit 20 --before <sig>
    tribunalsettle activity <owner> --history history.json --claims-for <subject>:<round>
    tribunalsettle activity <owner> --history history.json --config settle.yaml --format json

Exits 1 when a history page could not be fetched (the listing is partial).
"""

import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click

from tribunalsettle.activity.provider import JsonHistoryProvider
from tribunalsettle.activity.reconcile import ActivityPage, ActivityReconciler, claim_summary
from tribunalsettle.cli.output import (
    EXIT_FINDINGS,
    EXIT_OK,
    FORMAT_OPTION,
    NO_COLOR_OPTION,
    BAR_LIGHT,
    Color,
    banner,
    emit_json,
    fail,
    row_info,
)
from tribunalsettle.core.config import EngineConfig
from tribunalsettle.core.exceptions import TribunalSettleError
from tribunalsettle.core.log import configure_logging
from tribunalsettle.core.models import Confidence, SchemaVersion
from tribunalsettle.settlement.engine import lamports_to_sol


_CONFIDENCE_MARK = {
    Confidence.DECODED:   "●",
    Confidence.INFERRED:  "◐",
    Confidence.AMBIGUOUS: "○",
}


@click.command(name="activity")
@click.argument("owner", type=str)
@click.option("--history", "history_file", type=click.Path(), required=True,
              help="Exported transaction history (JSON).")
@click.option("--config", "config_file", type=click.Path(), default=None,
              help="YAML engine configuration.")
@click.option("--schema", type=click.Choice([v.value for v in SchemaVersion]), default=None,
              help="Program generation (overrides config).")
@click.option("--limit", type=int, default=None, help="Maximum entries to return.")
@click.option("--before", type=str, default=None, metavar="SIGNATURE",
              help="Resume strictly before this signature.")
@click.option("--claims-for", type=str, default=None, metavar="SUBJECT:ROUND",
              help="Summarise claims for one subject and round.")
@click.option("--verbose", "-v", count=True, help="Log to stderr (-v info, -vv debug).")
@FORMAT_OPTION
@NO_COLOR_OPTION
def activity_command(
    owner:        str,
    history_file: str,
    config_file:  Optional[str],
    schema:       Optional[str],
    limit:        Optional[int],
    before:       Optional[str],
    claims_for:   Optional[str],
    verbose:      int,
    fmt:          str,
    no_color:     bool,
) -> None:
    """
    Reconstruct OWNER's activity from an exported transaction history.

    \b
    Confidence marks:
      ●  decoded from a structured event
      ◐  inferred from log text or account positions
      ○  ambiguous: our program was invoked, nothing more is known
    """
    Color.configure(not no_color)

    try:
        config = EngineConfig.load(Path(config_file) if config_file else None)
        if schema:
            config = replace(config, schema_version=SchemaVersion(schema))
    except TribunalSettleError as e:
        fail(str(e), fmt)

    level = {0: config.log_level, 1: "INFO"}.get(verbose, "DEBUG")
    configure_logging(level)

    try:
        provider = JsonHistoryProvider.load(Path(history_file))
    except FileNotFoundError as e:
        fail(str(e), fmt)
    except (ValueError, KeyError, TypeError) as e:
        fail(f"Invalid history file: {e}", fmt)

    reconciler = ActivityReconciler(provider, config)
    try:
        page = reconciler.fetch_activity(owner, limit=limit, before=before)
    except (ValueError, TribunalSettleError) as e:
        fail(str(e), fmt)

    summary = None
    if claims_for:
        subject, _, round_text = claims_for.rpartition(":")
        if not subject or not round_text.isdigit():
            fail(f"Invalid --claims-for '{claims_for}'. Use SUBJECT:ROUND", fmt)
        summary = claim_summary(page.entries, subject, int(round_text))

    if fmt == "json":
        payload = page.to_dict()
        payload["owner"] = owner
        payload["schema_version"] = config.schema_version.value
        if summary is not None:
            payload["claim_summary"] = summary.to_dict()
        emit_json("tribunalsettle_activity", payload)
    else:
        _output_human(owner, page, config)
        if summary is not None:
            click.echo(row_info("Claims", f"{summary.total:,} lamports for round {summary.round}"))
            for role, entry in summary.by_role().items():
                click.echo(row_info(f"  {role.value}", f"{entry.amount or 0:,}  {Color.dim(entry.signature)}"))
            click.echo()

    sys.exit(EXIT_OK if page.complete else EXIT_FINDINGS)


def _output_human(owner: str, page: ActivityPage, config: EngineConfig) -> None:
    banner("Activity")
    click.echo(row_info("Owner", owner))
    click.echo(row_info("Program", f"{config.resolved_program_id}  {Color.dim(config.schema_version.value)}"))
    click.echo(row_info("Entries", f"{len(page.entries):,}"))
    click.echo()

    if page.entries:
        click.echo(f"  {BAR_LIGHT}")
        for entry in page.entries:
            mark = _CONFIDENCE_MARK[entry.confidence]
            kind = entry.activity_type.value if entry.success else Color.red(f"{entry.activity_type.value} (failed)")
            amount = f"{entry.amount:,}" if entry.amount is not None else "-"
            delta = ""
            if entry.balance_delta is not None:
                delta = Color.dim(f"  Δ {lamports_to_sol(entry.balance_delta)} SOL")
            click.echo(f"  {mark}  {entry.slot:>10}  {kind:<16}  {amount:>16}{delta}")
            click.echo(f"     {Color.dim(entry.signature)}")
        click.echo(f"  {BAR_LIGHT}")
        click.echo()

    for failure in page.failed_pages:
        click.echo(Color.yellow(f"  ⚠️   Page before {failure.before or 'newest'} failed: {failure.error}"))
    if page.next_cursor:
        click.echo(row_info("Next cursor", Color.cyan(page.next_cursor)))
    elif page.exhausted:
        click.echo(row_info("History", "exhausted"))
    click.echo()
