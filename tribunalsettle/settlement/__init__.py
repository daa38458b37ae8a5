"""Reward, refund and bond calculators."""

from tribunalsettle.settlement.engine import (
    calculate_challenger_reward,
    calculate_defender_reward,
    calculate_juror_reward,
    calculate_reward,
    calculate_user_rewards,
    check_claim,
    claim_payout,
    distribute_round,
    is_claimable,
)

__all__ = [
    "calculate_challenger_reward",
    "calculate_defender_reward",
    "calculate_juror_reward",
    "calculate_reward",
    "calculate_user_rewards",
    "check_claim",
    "claim_payout",
    "distribute_round",
    "is_claimable",
]
