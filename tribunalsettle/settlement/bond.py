"""
tribunalsettle/settlement/bond.py

Reputation & Minimum-Bond Model

Reputation is a scaled percentage in [0, ONE_HUNDRED_PERCENT]. It drives
three things the program enforces:

    minimum_bond       How much a challenger must put up to open a dispute.
                       Low reputation pays more, high reputation less.
    voting_power       A juror's weight: sqrt(stake) scaled by reputation.
    withdrawal_return  Below the slash threshold, withdrawals are cut.

Reputation moves after each resolved vote or dispute by a fixed rate,
optionally scaled by the stacked-sigmoid multiplier the current program
applies at claim time.
"""

import logging
from typing import Optional, Union

from tribunalsettle.core.constants import (
    MAX_BOND_MULTIPLE,
    MIN_BOND_FLOOR_DEN,
    MIN_BOND_FLOOR_NUM,
    MIN_SIGMOID_MULTIPLIER,
    ONE_HUNDRED_PERCENT,
    REP_PRECISION,
    REPUTATION_GAIN_RATE,
    REPUTATION_LOSS_RATE,
    SLASH_THRESHOLD,
    SQRT_HALF_SCALED,
    WEIGHT_PRECISION,
)
from tribunalsettle.core.exceptions import ValidationError
from tribunalsettle.core.fixedpoint import (
    checked_u64,
    checked_u128,
    div_trunc,
    integer_sqrt,
    mul_div,
    saturating_sub,
)
from tribunalsettle.core.models import (
    JurorRecord,
    ReputationScore,
    ResolutionOutcome,
    RestoreVoteChoice,
    VoteChoice,
)


logger = logging.getLogger(__name__)

Reputation = Union[int, ReputationScore]


def _score(reputation: Reputation) -> int:
    score = reputation.score if isinstance(reputation, ReputationScore) else int(reputation)
    if not 0 <= score <= ONE_HUNDRED_PERCENT:
        raise ValidationError(
            "Reputation out of range",
            {"score": score, "max": ONE_HUNDRED_PERCENT},
        )
    return score


# ─────────────────────────────────────────────────────────────
# Minimum bond
# ─────────────────────────────────────────────────────────────

def minimum_bond(reputation: Reputation, base_bond: int) -> int:
    """
    Minimum challenger bond for a given reputation.

        multiplier = sqrt(0.5 / reputation_fraction)
        bond       = base_bond * 7071 // isqrt(reputation)

    clamped to [0.7 * base_bond, 10 * base_bond].

        reputation   0%  → 10.00x  (explicit branch, no division)
        reputation  25%  →  1.41x
        reputation  50%  →  1.00x  (exact)
        reputation 100%  →  0.71x
    """
    score = _score(reputation)
    checked_u64(base_bond, "base_bond")
    ceiling = checked_u64(base_bond * MAX_BOND_MULTIPLE, "minimum_bond ceiling")

    if score == 0:
        return ceiling

    sqrt_rep = integer_sqrt(score)
    result   = checked_u128(base_bond * SQRT_HALF_SCALED, "minimum_bond") // sqrt_rep
    # The program floors at base_bond * 7 / 10; at 100% reputation the
    # curve already sits at 0.7071x, so the floor never binds in range.
    floor    = base_bond * MIN_BOND_FLOOR_NUM // MIN_BOND_FLOOR_DEN
    return min(max(result, floor), ceiling)


# ─────────────────────────────────────────────────────────────
# Reputation updates
# ─────────────────────────────────────────────────────────────

def apply_vote_outcome(reputation: Reputation, won: bool) -> int:
    """Fixed-rate update: +1% on a correct vote, -2% on a wrong one, clamped."""
    score = _score(reputation)
    if won:
        return min(score + REPUTATION_GAIN_RATE, ONE_HUNDRED_PERCENT)
    return saturating_sub(score, REPUTATION_LOSS_RATE)


def _exp_neg_approx(x_scaled: int) -> int:
    """
    e^(-x) scaled by 1_000_000, for x scaled by 1_000_000.

    Piecewise: 4th-order Taylor series of e^x below 3, e^-3 times a
    2nd-order series below 6, a linear tail below 10, then a constant.
    Reproduces the program's integer approximation exactly.
    """
    scale = 1_000_000
    x = min(x_scaled, 15_000_000)

    if x < 3_000_000:
        x2 = div_trunc(x * x, scale)
        x3 = div_trunc(x2 * x, scale)
        x4 = div_trunc(x3 * x, scale)
        exp_x = scale + x + div_trunc(x2, 2) + div_trunc(x3, 6) + div_trunc(x4, 24)
        return div_trunc(scale * scale, exp_x)

    remainder = x - 3_000_000
    if remainder < 3_000_000:
        x2 = remainder * remainder // scale
        exp_rem = scale + remainder + x2 // 2
        return 49_787 * (scale * scale // exp_rem) // scale

    if x > 10_000_000:
        return 45

    remainder = x - 6_000_000
    exp_rem = scale + remainder
    return 2_479 * (scale * scale // exp_rem) // scale


def _sigmoid(x_percent: int, midpoint: int) -> int:
    """1 / (1 + e^(-0.15 * (x - midpoint))), scaled by REP_PRECISION."""
    k_scaled = 150_000
    scale    = REP_PRECISION

    exponent = div_trunc(-k_scaled * (x_percent - midpoint), 1_000_000)
    if exponent > 15_000_000:
        return 0
    if exponent < -15_000_000:
        return scale

    if exponent >= 0:
        exp_neg = _exp_neg_approx(exponent)
        if exp_neg == 0:
            return 0
        exp_val = scale * scale // exp_neg
    else:
        exp_val = _exp_neg_approx(-exponent)

    return scale * scale // (scale + exp_val)


def stacked_sigmoid(reputation: Reputation) -> int:
    """
    Reputation-change multiplier in [MIN_SIGMOID_MULTIPLIER, 2 * ONE_HUNDRED_PERCENT].

        f(x) = max(0.2, s(x, 25%) + s(x, 75%))

    Low-reputation participants move slowly, established ones move fast
    in both directions.
    """
    score = _score(reputation)
    raw = (_sigmoid(score, 25_000_000) + _sigmoid(score, 75_000_000)) * 100
    return max(raw, MIN_SIGMOID_MULTIPLIER)


def apply_scaled_vote_outcome(reputation: Reputation, won: bool) -> int:
    """Sigmoid-scaled update applied by the current program at claim time."""
    score      = _score(reputation)
    multiplier = stacked_sigmoid(score)
    if won:
        gain = REPUTATION_GAIN_RATE * multiplier // ONE_HUNDRED_PERCENT
        return min(score + gain, ONE_HUNDRED_PERCENT)
    loss = REPUTATION_LOSS_RATE * multiplier // ONE_HUNDRED_PERCENT
    return saturating_sub(score, loss)


def juror_vote_correct(record: JurorRecord, outcome: ResolutionOutcome) -> Optional[bool]:
    """
    Whether a juror sided with the outcome.

    None when there is nothing to judge against (unresolved, or no
    participation).
    """
    if outcome in (ResolutionOutcome.NONE, ResolutionOutcome.NO_PARTICIPATION):
        return None
    challenger_won = outcome is ResolutionOutcome.CHALLENGER_WINS
    if record.is_restore_vote:
        return (record.restore_choice is RestoreVoteChoice.FOR_RESTORATION) == challenger_won
    return (record.choice is VoteChoice.FOR_CHALLENGER) == challenger_won


def reputation_after_claim(
    reputation: Reputation,
    record:     JurorRecord,
    outcome:    ResolutionOutcome,
) -> int:
    """Juror reputation once the claim for this record is processed."""
    correct = juror_vote_correct(record, outcome)
    if correct is None:
        return _score(reputation)
    return apply_scaled_vote_outcome(reputation, correct)


# ─────────────────────────────────────────────────────────────
# Voting power and withdrawals
# ─────────────────────────────────────────────────────────────

def voting_power(
    stake_allocated: int,
    reputation:      Reputation,
    votes_cast:      Optional[int] = None,
) -> int:
    """
    sqrt(stake) * reputation * WEIGHT_PRECISION / 100%

    With votes_cast, the experience term sqrt(votes_cast + 1) is applied
    as well (dispute-indexed juror accounts track it).
    """
    score = _score(reputation)
    power = integer_sqrt(checked_u64(stake_allocated, "stake_allocated")) * score
    if votes_cast is not None:
        power *= integer_sqrt(votes_cast + 1)
    power = checked_u128(power * WEIGHT_PRECISION, "voting_power")
    return checked_u64(power // ONE_HUNDRED_PERCENT, "voting_power")


def withdrawal_return(amount: int, reputation: Reputation) -> tuple[int, int]:
    """
    Split a stake withdrawal into (returned, slashed).

    At or above the slash threshold the full amount returns. Below it the
    return fraction is twice the reputation: 25% reputation gets 50% back.
    """
    score = _score(reputation)
    checked_u64(amount, "withdrawal amount")
    if score >= SLASH_THRESHOLD:
        return amount, 0
    returned = mul_div(amount, score * 2, ONE_HUNDRED_PERCENT, "withdrawal")
    slashed  = amount - returned
    if slashed:
        logger.debug("Withdrawal of %d slashed by %d at reputation %d", amount, slashed, score)
    return returned, slashed
