"""
tribunalsettle/cli/rewards.py

tribunalsettle rewards:  what a user is owed for one resolved round
tribunalsettle min-bond: minimum challenger bond for a reputation

Usage:
    tribunalsettle rewards round.json
    tribunalsettle rewards round.json --format json
    tribunalsettle min-bond --reputation 50% --base 10000000

Round file (JSON):
    {
      "round":   { "round": 3, "outcome": "ChallengerWins", "total_stake": 1000, ... },
      "records": [ { "role": "Challenger", "owner": "...", "subject": "...", "round": 3, "stake": 250 } ],
      "claims":  { "Challenger": 200 }
    }

"claims" is optional: observed payouts, checked against the recomputed
amounts. Any mismatch exits 1.
"""

import json
import sys
from pathlib import Path
from typing import Dict, List, Optional

import click

from tribunalsettle.cli.output import (
    EXIT_FINDINGS,
    EXIT_OK,
    FORMAT_OPTION,
    NO_COLOR_OPTION,
    Color,
    banner,
    emit_json,
    fail,
    row_fail,
    row_info,
    row_ok,
)
from tribunalsettle.core.constants import BASE_CHALLENGER_BOND, ONE_HUNDRED_PERCENT
from tribunalsettle.core.exceptions import TribunalSettleError
from tribunalsettle.core.models import (
    ChallengerRecord,
    ClaimCheck,
    DefenderRecord,
    JurorRecord,
    Role,
    RoundResult,
    UserRewardSummary,
    record_from_dict,
)
from tribunalsettle.settlement.bond import minimum_bond, stacked_sigmoid
from tribunalsettle.settlement.engine import (
    calculate_user_rewards,
    check_claim,
    check_round_invariant,
    lamports_to_sol,
)


# ── rewards ───────────────────────────────────────────────────────────────────

@click.command(name="rewards")
@click.argument("round_file", type=click.Path(exists=False))
@FORMAT_OPTION
@NO_COLOR_OPTION
def rewards_command(round_file: str, fmt: str, no_color: bool) -> None:
    """
    Compute juror, challenger and defender rewards for one round.

    ROUND_FILE is a JSON file with the round result and the user's records.
    """
    Color.configure(not no_color)

    path = Path(round_file)
    if not path.exists():
        fail(f"Round file not found: {round_file}", fmt)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        round_result = RoundResult.from_dict(data["round"])
        records = [record_from_dict(r) for r in data.get("records", [])]
        observed: Dict[str, int] = {k: int(v) for k, v in (data.get("claims") or {}).items()}
    except (KeyError, ValueError, TypeError, json.JSONDecodeError, TribunalSettleError) as e:
        fail(f"Invalid round file: {e}", fmt)

    by_type = {type(r): r for r in records}
    try:
        summary = calculate_user_rewards(
            round_result,
            juror=      by_type.get(JurorRecord),
            challenger= by_type.get(ChallengerRecord),
            defender=   by_type.get(DefenderRecord),
        )
        checks: List[ClaimCheck] = [
            check_claim(round_result, record, observed[record.role.value])
            for record in records
            if record.role.value in observed
        ]
    except TribunalSettleError as e:
        fail(str(e), fmt)

    invariant_ok = check_round_invariant(round_result)
    clean = all(checks) and invariant_ok

    if fmt == "json":
        emit_json("tribunalsettle_rewards", {
            "summary":        summary.to_dict(),
            "pool_invariant": invariant_ok,
            "claim_checks":   [c.to_dict() for c in checks],
        })
    else:
        _output_human(summary, checks, invariant_ok)

    sys.exit(EXIT_OK if clean else EXIT_FINDINGS)


def _output_human(summary: UserRewardSummary, checks: List[ClaimCheck], invariant_ok: bool) -> None:
    banner("Round Rewards")
    click.echo(row_info("Round", str(summary.round)))
    click.echo(row_info("Outcome", Color.cyan(summary.outcome.value)))
    click.echo()

    for role, part in (
        (Role.JUROR, summary.juror),
        (Role.CHALLENGER, summary.challenger),
        (Role.DEFENDER, summary.defender),
    ):
        if part is None:
            continue
        claimable = summary.claimable.get(role.value, False)
        state = Color.green("claimable") if claimable else Color.dim("not claimable")
        click.echo(row_info(role.value, f"{part.total:,} lamports  ({lamports_to_sol(part.total)} SOL)  {state}"))

    click.echo()
    click.echo(row_info("Total", Color.bold(f"{summary.total:,} lamports")))
    click.echo(row_info("Claimable", f"{summary.claimable_total:,} lamports"))
    click.echo()

    if invariant_ok:
        click.echo(row_ok("Pool invariant", "winner + juror + fee == stake + bond at risk"))
    else:
        click.echo(row_fail("Pool invariant", Color.red("round pools do not add up")))

    for check in checks:
        if check.matches:
            click.echo(row_ok(f"{check.role.value} claim", f"{check.observed:,} matches"))
        else:
            click.echo(row_fail(
                f"{check.role.value} claim",
                Color.red(f"observed {check.observed:,}, expected {check.expected:,} ({check.delta:+,})"),
            ))
    click.echo()


# ── min-bond ──────────────────────────────────────────────────────────────────

def _parse_reputation(raw: str) -> int:
    """'50%' or '50.5%' → scaled; a bare integer is already scaled."""
    text = raw.strip()
    if text.endswith("%"):
        whole, _, frac = text[:-1].partition(".")
        frac = (frac + "000000")[:6]
        return int(whole or "0") * 1_000_000 + int(frac)
    return int(text)


@click.command(name="min-bond")
@click.option("--reputation", required=True, metavar="REP",
              help="Reputation as a percentage ('50%') or scaled integer (50000000).")
@click.option("--base", "base_bond", type=int, default=BASE_CHALLENGER_BOND, show_default=True,
              help="Base bond in lamports.")
@FORMAT_OPTION
@NO_COLOR_OPTION
def min_bond_command(reputation: str, base_bond: int, fmt: str, no_color: bool) -> None:
    """Minimum challenger bond for a reputation score."""
    Color.configure(not no_color)
    try:
        score = _parse_reputation(reputation)
        bond = minimum_bond(score, base_bond)
        multiplier = stacked_sigmoid(score)
    except (ValueError, TribunalSettleError) as e:
        fail(f"Invalid reputation '{reputation}': {e}", fmt)

    if fmt == "json":
        emit_json("tribunalsettle_min_bond", {
            "reputation":         score,
            "base_bond":          base_bond,
            "minimum_bond":       bond,
            "sigmoid_multiplier": multiplier,
        })
    else:
        click.echo(row_info("Reputation", f"{score * 100 / ONE_HUNDRED_PERCENT:.4f}%"))
        click.echo(row_info("Base bond", f"{base_bond:,} lamports"))
        click.echo(row_info("Minimum bond", Color.bold(f"{bond:,} lamports  ({lamports_to_sol(bond)} SOL)")))
        click.echo(row_info("Rep. multiplier", f"{multiplier / ONE_HUNDRED_PERCENT:.4f}x"))
    sys.exit(EXIT_OK)
