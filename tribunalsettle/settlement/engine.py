"""
tribunalsettle/settlement/engine.py

Settlement calculator.

Recomputes, bit-for-bit, what each participant of a resolved round is
owed. Every share is a u128 multiply followed by a floor division,
exactly as the program computes it at claim time.

    Resolution split (distribute_round)
        normal outcome   fees = 20% of pool → 95% jurors, 5% platform
                         winner pool = pool - fees
        NoParticipation  platform fee = 1% of pool, no juror pool
                         refund pool  = pool - platform fee

    Claims
        juror       juror_pool * voting_power / total_vote_weight
        challenger  winner_pool * stake / total_stake        (ChallengerWins)
                    refund_pool * stake / total_pool         (NoParticipation)
        defender    safe bond share, always
                    + winner_pool * at_risk / bond_at_risk   (DefenderWins)
                    + refund_pool * at_risk / total_pool     (NoParticipation)

The calculators above give the proportional entitlement shown to users.
claim_payout() is what the claim instruction actually transfers, and
differs in two places: jurors are paid only for a correct vote, and
restorers get their winner-pool share whatever the outcome.

A zero denominator yields a zero share, never an error. A value that
leaves its integer width raises ArithmeticOverflowError.

Nothing here mutates ledger state. Results are advisory: the program
remains the authority on what a claim actually pays.
"""

import logging
from decimal import Decimal
from typing import Optional

from tribunalsettle.core.constants import (
    JUROR_SHARE_BPS,
    LAMPORTS_PER_SOL,
    PLATFORM_SHARE_BPS,
    TOTAL_FEE_BPS,
)
from tribunalsettle.core.exceptions import ValidationError
from tribunalsettle.core.fixedpoint import bps_of, checked_u64, mul_div, saturating_sub
from tribunalsettle.core.models import (
    ChallengerRecord,
    ChallengerRewardBreakdown,
    ClaimCheck,
    DefenderRecord,
    DefenderRewardBreakdown,
    JurorRecord,
    JurorRewardBreakdown,
    ParticipantRecord,
    ResolutionOutcome,
    Role,
    RoundDistribution,
    RoundResult,
    UserRewardSummary,
)
from tribunalsettle.settlement.bond import juror_vote_correct


logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Resolution split
# ─────────────────────────────────────────────────────────────

def determine_outcome(votes_for_challenger: int, votes_for_defender: int) -> ResolutionOutcome:
    """Strict majority of voting power for the challenger wins; ties go to the defender."""
    total_power = votes_for_challenger + votes_for_defender
    if total_power == 0:
        return ResolutionOutcome.NO_PARTICIPATION
    if votes_for_challenger > total_power // 2:
        return ResolutionOutcome.CHALLENGER_WINS
    return ResolutionOutcome.DEFENDER_WINS


def platform_fee(total_pool: int, outcome: ResolutionOutcome) -> int:
    """Amount the treasury takes from a round's pool at resolution."""
    total_fees = bps_of(total_pool, TOTAL_FEE_BPS, "total_fees")
    if outcome is ResolutionOutcome.NO_PARTICIPATION:
        return bps_of(total_fees, PLATFORM_SHARE_BPS, "platform_fee")
    return total_fees - bps_of(total_fees, JUROR_SHARE_BPS, "juror_pool")


def distribute_round(
    total_stake:       int,
    bond_at_risk:      int,
    outcome:           ResolutionOutcome,
    available_bond:    Optional[int] = None,
    total_vote_weight: int = 0,
) -> RoundDistribution:
    """
    Split a round's pool the way resolution does.

    available_bond is the subject's whole bond; whatever is not at risk
    is the safe bond, returned to defenders regardless of outcome.
    """
    if outcome is ResolutionOutcome.NONE:
        raise ValidationError("Cannot distribute an unresolved round")

    checked_u64(total_stake, "total_stake")
    checked_u64(bond_at_risk, "bond_at_risk")
    total_pool = checked_u64(total_stake + bond_at_risk, "total_pool")
    safe_bond  = saturating_sub(available_bond, bond_at_risk) if available_bond is not None else 0

    total_fees = bps_of(total_pool, TOTAL_FEE_BPS, "total_fees")
    if outcome is ResolutionOutcome.NO_PARTICIPATION:
        treasury   = bps_of(total_fees, PLATFORM_SHARE_BPS, "platform_fee")
        juror_pool = 0
        winner     = total_pool - treasury
    else:
        juror_pool = bps_of(total_fees, JUROR_SHARE_BPS, "juror_pool")
        treasury   = total_fees - juror_pool
        winner     = total_pool - total_fees

    distribution = RoundDistribution(
        outcome=           outcome,
        total_stake=       total_stake,
        bond_at_risk=      bond_at_risk,
        safe_bond=         safe_bond,
        total_vote_weight= total_vote_weight,
        platform_fee=      treasury,
        juror_pool=        juror_pool,
        winner_pool=       winner,
    )
    logger.debug(
        "Round split %s: pool=%d winner=%d juror=%d fee=%d",
        outcome.value, total_pool, winner, juror_pool, treasury,
    )
    return distribution


def check_round_invariant(round_result: RoundResult) -> bool:
    """winner_pool + juror_pool + platform_fee == total_stake + bond_at_risk"""
    if not round_result.outcome.is_resolved:
        return True
    fee = platform_fee(round_result.total_pool, round_result.outcome)
    return round_result.winner_pool + round_result.juror_pool + fee == round_result.total_pool


def refund_pool(round_result: RoundResult) -> int:
    """
    Pool refunded proportionally on NoParticipation.

    The program stores it as the round's winner pool. Snapshots that
    omit it (zero with a non-empty pool) are re-derived from the fee
    schedule.
    """
    if round_result.winner_pool or not round_result.total_pool:
        return round_result.winner_pool
    fee = platform_fee(round_result.total_pool, ResolutionOutcome.NO_PARTICIPATION)
    return round_result.total_pool - fee


# ─────────────────────────────────────────────────────────────
# Per-role claims
# ─────────────────────────────────────────────────────────────

def calculate_juror_reward(round_result: RoundResult, record: JurorRecord) -> JurorRewardBreakdown:
    reward = mul_div(
        round_result.juror_pool,
        record.voting_power,
        round_result.total_vote_weight,
        "juror_reward",
    )
    return JurorRewardBreakdown(
        juror_pool=        round_result.juror_pool,
        voting_power=      record.voting_power,
        total_vote_weight= round_result.total_vote_weight,
        reward=            reward,
    )


def calculate_challenger_reward(
    round_result: RoundResult,
    record:       ChallengerRecord,
) -> ChallengerRewardBreakdown:
    outcome = round_result.outcome

    if outcome is ResolutionOutcome.CHALLENGER_WINS:
        pool        = round_result.winner_pool
        denominator = round_result.total_stake
    elif outcome is ResolutionOutcome.NO_PARTICIPATION:
        pool        = refund_pool(round_result)
        denominator = round_result.total_pool
    elif outcome in (ResolutionOutcome.DEFENDER_WINS, ResolutionOutcome.NONE):
        pool        = 0
        denominator = 0
    else:
        raise ValidationError("Unhandled outcome", {"outcome": outcome})

    return ChallengerRewardBreakdown(
        outcome=     outcome,
        pool=        pool,
        stake=       record.stake,
        denominator= denominator,
        reward=      mul_div(pool, record.stake, denominator, "challenger_reward"),
    )


def calculate_defender_reward(
    round_result: RoundResult,
    record:       DefenderRecord,
) -> DefenderRewardBreakdown:
    outcome   = round_result.outcome
    available = round_result.available_bond

    if outcome is ResolutionOutcome.NONE:
        return DefenderRewardBreakdown(
            outcome=         outcome,
            bond=            record.bond,
            available_bond=  available,
            at_risk_share=   0,
            safe_bond_share= 0,
            pool_share=      0,
        )

    safe_share    = mul_div(round_result.safe_bond, record.bond, available, "safe_bond_share")
    at_risk_share = mul_div(round_result.bond_at_risk, record.bond, available, "at_risk_share")

    if outcome is ResolutionOutcome.DEFENDER_WINS:
        pool_share = mul_div(
            round_result.winner_pool, at_risk_share, round_result.bond_at_risk, "defender_reward",
        )
    elif outcome is ResolutionOutcome.NO_PARTICIPATION:
        pool_share = mul_div(
            refund_pool(round_result), at_risk_share, round_result.total_pool, "defender_refund",
        )
    elif outcome is ResolutionOutcome.CHALLENGER_WINS:
        pool_share = 0
    else:
        raise ValidationError("Unhandled outcome", {"outcome": outcome})

    return DefenderRewardBreakdown(
        outcome=         outcome,
        bond=            record.bond,
        available_bond=  available,
        at_risk_share=   at_risk_share,
        safe_bond_share= safe_share,
        pool_share=      pool_share,
    )


def calculate_reward(round_result: RoundResult, record: ParticipantRecord):
    """Dispatch to the calculator for the record's role."""
    if isinstance(record, JurorRecord):
        return calculate_juror_reward(round_result, record)
    if isinstance(record, ChallengerRecord):
        return calculate_challenger_reward(round_result, record)
    if isinstance(record, DefenderRecord):
        return calculate_defender_reward(round_result, record)
    raise ValidationError("Unknown participant record", {"type": type(record).__name__})


# ─────────────────────────────────────────────────────────────
# Claimability (advisory; the program is the authority)
# ─────────────────────────────────────────────────────────────

def is_juror_reward_claimable(record: JurorRecord) -> bool:
    return not record.reward_claimed


def is_defender_reward_claimable(record: DefenderRecord) -> bool:
    return not record.reward_claimed


def is_challenger_reward_claimable(record: ChallengerRecord, outcome: ResolutionOutcome) -> bool:
    if record.reward_claimed:
        return False
    return outcome in (ResolutionOutcome.CHALLENGER_WINS, ResolutionOutcome.NO_PARTICIPATION)


def is_claimable(record: ParticipantRecord, outcome: ResolutionOutcome) -> bool:
    if not outcome.is_resolved:
        return False
    if isinstance(record, ChallengerRecord):
        return is_challenger_reward_claimable(record, outcome)
    if isinstance(record, DefenderRecord):
        return is_defender_reward_claimable(record)
    if isinstance(record, JurorRecord):
        return is_juror_reward_claimable(record)
    raise ValidationError("Unknown participant record", {"type": type(record).__name__})


# ─────────────────────────────────────────────────────────────
# Summaries and checks
# ─────────────────────────────────────────────────────────────

def calculate_user_rewards(
    round_result: RoundResult,
    juror:        Optional[JurorRecord] = None,
    challenger:   Optional[ChallengerRecord] = None,
    defender:     Optional[DefenderRecord] = None,
) -> UserRewardSummary:
    """Everything one user is owed for one round, across all roles they hold."""
    summary = UserRewardSummary(round=round_result.round, outcome=round_result.outcome)

    for record in (juror, challenger, defender):
        if record is None:
            continue
        if record.round != round_result.round:
            raise ValidationError(
                "Record belongs to a different round",
                {"record_round": record.round, "round": round_result.round},
            )

    if juror is not None:
        summary.juror = calculate_juror_reward(round_result, juror)
        summary.claimable[Role.JUROR.value] = is_claimable(juror, round_result.outcome)
    if challenger is not None:
        summary.challenger = calculate_challenger_reward(round_result, challenger)
        summary.claimable[Role.CHALLENGER.value] = is_claimable(challenger, round_result.outcome)
    if defender is not None:
        summary.defender = calculate_defender_reward(round_result, defender)
        summary.claimable[Role.DEFENDER.value] = is_claimable(defender, round_result.outcome)

    return summary


def claim_payout(round_result: RoundResult, record: ParticipantRecord) -> int:
    """
    Lamports the claim instruction transfers for this record.

    Jurors on the losing side, and all jurors on NoParticipation, receive
    nothing. A restorer receives winner_pool * stake / total_stake on any
    outcome.
    """
    if isinstance(record, JurorRecord):
        if juror_vote_correct(record, round_result.outcome) is not True:
            return 0
        return calculate_juror_reward(round_result, record).reward
    if isinstance(record, ChallengerRecord) and round_result.is_restore():
        if not round_result.outcome.is_resolved:
            return 0
        return mul_div(round_result.winner_pool, record.stake, round_result.total_stake, "restorer_reward")
    return calculate_reward(round_result, record).total


def check_claim(
    round_result:   RoundResult,
    record:         ParticipantRecord,
    claimed_amount: int,
) -> ClaimCheck:
    """Compare an observed claim payout with what the program pays."""
    expected = claim_payout(round_result, record)
    check = ClaimCheck(role=record.role, expected=expected, observed=claimed_amount)
    if not check.matches:
        logger.warning(
            "Claim mismatch for %s in round %d: expected %d, observed %d",
            record.role.value, round_result.round, expected, claimed_amount,
        )
    return check


def lamports_to_sol(lamports: int, decimals: int = 6) -> str:
    """Display helper. Never feed the result back into arithmetic."""
    sol = Decimal(lamports) / Decimal(LAMPORTS_PER_SOL)
    return f"{sol:.{decimals}f}"
