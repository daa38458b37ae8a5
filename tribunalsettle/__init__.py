"""
tribunalsettle/__init__.py

TribunalSettle: off-chain settlement and activity reconciliation for the
TribunalCraft arbitration ledger.

Two halves sharing one integer math kernel:

    settlement   Recompute, bit-for-bit, what each juror, challenger and
                 defender of a resolved round is owed.
    activity     Rebuild a user's history from raw transaction logs,
                 without an indexer.

Nothing here writes to the ledger. Results are advisory; the program is
the authority.
"""

__version__ = "0.3.0"

from tribunalsettle.core.config import EngineConfig
from tribunalsettle.core.exceptions import (
    ArithmeticOverflowError,
    ConfigError,
    DecodeError,
    HistoryFetchError,
    TribunalSettleError,
    ValidationError,
)
from tribunalsettle.core.fixedpoint import integer_sqrt
from tribunalsettle.core.models import (
    ActivityEntry,
    ActivityType,
    ChallengerRecord,
    Confidence,
    DefenderRecord,
    JurorRecord,
    ReputationScore,
    ResolutionOutcome,
    Role,
    RoundResult,
    SchemaVersion,
)
from tribunalsettle.settlement.bond import minimum_bond, voting_power
from tribunalsettle.settlement.engine import (
    calculate_challenger_reward,
    calculate_defender_reward,
    calculate_juror_reward,
    calculate_user_rewards,
    distribute_round,
)
from tribunalsettle.activity.reconcile import ActivityReconciler

__all__ = [
    # Models
    "ActivityEntry",
    "ActivityType",
    "ChallengerRecord",
    "Confidence",
    "DefenderRecord",
    "JurorRecord",
    "ReputationScore",
    "ResolutionOutcome",
    "Role",
    "RoundResult",
    "SchemaVersion",
    # Settlement
    "calculate_challenger_reward",
    "calculate_defender_reward",
    "calculate_juror_reward",
    "calculate_user_rewards",
    "distribute_round",
    "integer_sqrt",
    "minimum_bond",
    "voting_power",
    # Activity
    "ActivityReconciler",
    "EngineConfig",
    # Errors
    "ArithmeticOverflowError",
    "ConfigError",
    "DecodeError",
    "HistoryFetchError",
    "TribunalSettleError",
    "ValidationError",
]
