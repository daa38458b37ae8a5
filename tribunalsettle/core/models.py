"""
tribunalsettle/core/models.py

Settlement Data Model

Entities read from the arbitration ledger (round results, participant
records, reputation) and the values derived from them (reward
breakdowns, activity entries).

Authoritative entities are frozen: the engine never mutates ledger
state, it only reads it. Every model round-trips through
to_dict() / from_dict() so results can be persisted as plain JSON.

Amounts are lamports (int). Reputation is a scaled percentage where
ONE_HUNDRED_PERCENT = 100_000_000.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from tribunalsettle.core.constants import ONE_HUNDRED_PERCENT
from tribunalsettle.core.exceptions import ValidationError


# ─────────────────────────────────────────────────────────────
# Enumerations
# ─────────────────────────────────────────────────────────────

class ResolutionOutcome(Enum):
    NONE             = "None"
    CHALLENGER_WINS  = "ChallengerWins"
    DEFENDER_WINS    = "DefenderWins"
    NO_PARTICIPATION = "NoParticipation"

    @property
    def is_resolved(self) -> bool:
        return self is not ResolutionOutcome.NONE


class Role(Enum):
    DEFENDER   = "Defender"
    CHALLENGER = "Challenger"
    JUROR      = "Juror"


class VoteChoice(Enum):
    FOR_CHALLENGER = "ForChallenger"
    FOR_DEFENDER   = "ForDefender"


class RestoreVoteChoice(Enum):
    FOR_RESTORATION     = "ForRestoration"
    AGAINST_RESTORATION = "AgainstRestoration"


class BondSource(Enum):
    DIRECT = "Direct"
    POOL   = "Pool"


class SchemaVersion(Enum):
    """
    Ledger program generation.

    ROUND    Records keyed by (subject, round); round results live in the
             subject escrow; the program emits structured events.
    DISPUTE  Records keyed by a dispute account; no structured events.
    """
    ROUND   = "round"
    DISPUTE = "dispute"


class Confidence(Enum):
    DECODED   = "decoded"     # structured event decoded
    INFERRED  = "inferred"    # classified from log text or account positions
    AMBIGUOUS = "ambiguous"   # our program touched it; nothing more is known


class ActivityType(Enum):
    VOTE           = "vote"
    CLAIM          = "claim"
    CHALLENGE      = "challenge"
    DEFEND         = "defend"
    RESOLVE        = "resolve"
    RESTORE        = "restore"
    CREATE_SUBJECT = "create_subject"
    CLOSE_RECORD   = "close_record"
    UNLOCK_STAKE   = "unlock_stake"
    REGISTER_JUROR = "register_juror"
    DEPOSIT        = "deposit"
    WITHDRAW       = "withdraw"
    SWEEP          = "sweep"
    ADMIN          = "admin"
    UNKNOWN        = "unknown"


def _enum_value(member: Optional[Enum]) -> Optional[str]:
    return member.value if member is not None else None


# ─────────────────────────────────────────────────────────────
# Round Result
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RoundResult:
    """
    Snapshot of one resolved round, as stored in the subject escrow.

    Invariant at resolution:
        winner_pool + juror_pool + platform_fee == total_stake + bond_at_risk
    """
    round:             int
    outcome:           ResolutionOutcome
    total_stake:       int
    bond_at_risk:      int
    safe_bond:         int = 0
    total_vote_weight: int = 0
    winner_pool:       int = 0
    juror_pool:        int = 0
    creator:           Optional[str] = None
    resolved_at:       int = 0
    defender_count:    int = 0
    challenger_count:  int = 0
    juror_count:       int = 0
    defender_claims:   int = 0
    challenger_claims: int = 0
    juror_claims:      int = 0

    @property
    def total_pool(self) -> int:
        return self.total_stake + self.bond_at_risk

    @property
    def available_bond(self) -> int:
        return self.bond_at_risk + self.safe_bond

    def is_restore(self) -> bool:
        """Restoration rounds put no defender bond at risk."""
        return self.bond_at_risk == 0 and self.total_stake > 0

    def is_fully_claimed(self) -> bool:
        return (
            self.defender_claims >= self.defender_count
            and self.challenger_claims >= self.challenger_count
            and self.juror_claims >= self.juror_count
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round":             self.round,
            "creator":           self.creator,
            "resolved_at":       self.resolved_at,
            "outcome":           self.outcome.value,
            "total_stake":       self.total_stake,
            "bond_at_risk":      self.bond_at_risk,
            "safe_bond":         self.safe_bond,
            "total_vote_weight": self.total_vote_weight,
            "winner_pool":       self.winner_pool,
            "juror_pool":        self.juror_pool,
            "defender_count":    self.defender_count,
            "challenger_count":  self.challenger_count,
            "juror_count":       self.juror_count,
            "defender_claims":   self.defender_claims,
            "challenger_claims": self.challenger_claims,
            "juror_claims":      self.juror_claims,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoundResult":
        return cls(
            round=             int(data.get("round", 0)),
            outcome=           ResolutionOutcome(data.get("outcome", "None")),
            total_stake=       int(data.get("total_stake", 0)),
            bond_at_risk=      int(data.get("bond_at_risk", 0)),
            safe_bond=         int(data.get("safe_bond", 0)),
            total_vote_weight= int(data.get("total_vote_weight", 0)),
            winner_pool=       int(data.get("winner_pool", 0)),
            juror_pool=        int(data.get("juror_pool", 0)),
            creator=           data.get("creator"),
            resolved_at=       int(data.get("resolved_at", 0)),
            defender_count=    int(data.get("defender_count", 0)),
            challenger_count=  int(data.get("challenger_count", 0)),
            juror_count=       int(data.get("juror_count", 0)),
            defender_claims=   int(data.get("defender_claims", 0)),
            challenger_claims= int(data.get("challenger_claims", 0)),
            juror_claims=      int(data.get("juror_claims", 0)),
        )


# ─────────────────────────────────────────────────────────────
# Participant Records
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DefenderRecord:
    owner:          str
    subject:        str
    round:          int
    bond:           int
    source:         BondSource = BondSource.DIRECT
    reward_claimed: bool = False
    created_at:     int = 0
    dispute:        Optional[str] = None

    role = Role.DEFENDER

    @property
    def contribution(self) -> int:
        return self.bond

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role":           self.role.value,
            "owner":          self.owner,
            "subject":        self.subject,
            "round":          self.round,
            "bond":           self.bond,
            "source":         self.source.value,
            "reward_claimed": self.reward_claimed,
            "created_at":     self.created_at,
            "dispute":        self.dispute,
        }


@dataclass(frozen=True)
class ChallengerRecord:
    owner:          str
    subject:        str
    round:          int
    stake:          int
    details_cid:    str = ""
    reward_claimed: bool = False
    created_at:     int = 0
    dispute:        Optional[str] = None

    role = Role.CHALLENGER

    @property
    def contribution(self) -> int:
        return self.stake

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role":           self.role.value,
            "owner":          self.owner,
            "subject":        self.subject,
            "round":          self.round,
            "stake":          self.stake,
            "details_cid":    self.details_cid,
            "reward_claimed": self.reward_claimed,
            "created_at":     self.created_at,
            "dispute":        self.dispute,
        }


@dataclass(frozen=True)
class JurorRecord:
    owner:            str
    subject:          str
    round:            int
    voting_power:     int
    stake_allocation: int = 0
    choice:           VoteChoice = VoteChoice.FOR_CHALLENGER
    restore_choice:   RestoreVoteChoice = RestoreVoteChoice.FOR_RESTORATION
    is_restore_vote:  bool = False
    reward_claimed:   bool = False
    stake_unlocked:   bool = False
    created_at:       int = 0
    rationale_cid:    str = ""
    dispute:          Optional[str] = None

    role = Role.JUROR

    @property
    def contribution(self) -> int:
        return self.stake_allocation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role":             self.role.value,
            "owner":            self.owner,
            "subject":          self.subject,
            "round":            self.round,
            "voting_power":     self.voting_power,
            "stake_allocation": self.stake_allocation,
            "choice":           self.choice.value,
            "restore_choice":   self.restore_choice.value,
            "is_restore_vote":  self.is_restore_vote,
            "reward_claimed":   self.reward_claimed,
            "stake_unlocked":   self.stake_unlocked,
            "created_at":       self.created_at,
            "rationale_cid":    self.rationale_cid,
            "dispute":          self.dispute,
        }


ParticipantRecord = Union[DefenderRecord, ChallengerRecord, JurorRecord]


def record_from_dict(data: Dict[str, Any]) -> ParticipantRecord:
    """Rebuild a participant record from its to_dict() form, dispatching on role."""
    try:
        role = Role(data["role"])
    except (KeyError, ValueError) as e:
        raise ValidationError("Participant record has no valid role", {"error": str(e)})

    common = {
        "owner":          data["owner"],
        "subject":        data["subject"],
        "round":          int(data.get("round", 0)),
        "reward_claimed": bool(data.get("reward_claimed", False)),
        "created_at":     int(data.get("created_at", 0)),
        "dispute":        data.get("dispute"),
    }
    if role is Role.DEFENDER:
        return DefenderRecord(
            bond=   int(data["bond"]),
            source= BondSource(data.get("source", "Direct")),
            **common,
        )
    if role is Role.CHALLENGER:
        return ChallengerRecord(
            stake=       int(data["stake"]),
            details_cid= data.get("details_cid", ""),
            **common,
        )
    if role is Role.JUROR:
        return JurorRecord(
            voting_power=     int(data["voting_power"]),
            stake_allocation= int(data.get("stake_allocation", 0)),
            choice=           VoteChoice(data.get("choice", "ForChallenger")),
            restore_choice=   RestoreVoteChoice(data.get("restore_choice", "ForRestoration")),
            is_restore_vote=  bool(data.get("is_restore_vote", False)),
            stake_unlocked=   bool(data.get("stake_unlocked", False)),
            rationale_cid=    data.get("rationale_cid", ""),
            **common,
        )
    raise ValidationError("Unhandled participant role", {"role": role})


# ─────────────────────────────────────────────────────────────
# Reputation
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ReputationScore:
    owner: str
    score: int

    def __post_init__(self):
        if not 0 <= self.score <= ONE_HUNDRED_PERCENT:
            raise ValidationError(
                "Reputation out of range",
                {"owner": self.owner, "score": self.score, "max": ONE_HUNDRED_PERCENT},
            )

    def to_dict(self) -> Dict[str, Any]:
        return {"owner": self.owner, "score": self.score}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReputationScore":
        return cls(owner=data["owner"], score=int(data["score"]))


# ─────────────────────────────────────────────────────────────
# Reward Breakdowns
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class JurorRewardBreakdown:
    juror_pool:        int
    voting_power:      int
    total_vote_weight: int
    reward:            int

    @property
    def total(self) -> int:
        return self.reward

    def to_dict(self) -> Dict[str, Any]:
        return {
            "juror_pool":        self.juror_pool,
            "voting_power":      self.voting_power,
            "total_vote_weight": self.total_vote_weight,
            "reward":            self.reward,
        }


@dataclass(frozen=True)
class ChallengerRewardBreakdown:
    outcome:     ResolutionOutcome
    pool:        int   # winner pool, or the refund pool on NoParticipation
    stake:       int
    denominator: int
    reward:      int

    @property
    def total(self) -> int:
        return self.reward

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome":     self.outcome.value,
            "pool":        self.pool,
            "stake":       self.stake,
            "denominator": self.denominator,
            "reward":      self.reward,
        }


@dataclass(frozen=True)
class DefenderRewardBreakdown:
    outcome:         ResolutionOutcome
    bond:            int
    available_bond:  int
    at_risk_share:   int
    safe_bond_share: int
    pool_share:      int

    @property
    def total(self) -> int:
        return self.safe_bond_share + self.pool_share

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome":         self.outcome.value,
            "bond":            self.bond,
            "available_bond":  self.available_bond,
            "at_risk_share":   self.at_risk_share,
            "safe_bond_share": self.safe_bond_share,
            "pool_share":      self.pool_share,
            "total":           self.total,
        }


@dataclass
class UserRewardSummary:
    round:      int
    outcome:    ResolutionOutcome
    juror:      Optional[JurorRewardBreakdown] = None
    challenger: Optional[ChallengerRewardBreakdown] = None
    defender:   Optional[DefenderRewardBreakdown] = None
    claimable:  Dict[str, bool] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(
            part.total
            for part in (self.juror, self.challenger, self.defender)
            if part is not None
        )

    @property
    def claimable_total(self) -> int:
        total = 0
        for role, part in (
            (Role.JUROR, self.juror),
            (Role.CHALLENGER, self.challenger),
            (Role.DEFENDER, self.defender),
        ):
            if part is not None and self.claimable.get(role.value):
                total += part.total
        return total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round":           self.round,
            "outcome":         self.outcome.value,
            "juror":           self.juror.to_dict() if self.juror else None,
            "challenger":      self.challenger.to_dict() if self.challenger else None,
            "defender":        self.defender.to_dict() if self.defender else None,
            "claimable":       dict(self.claimable),
            "total":           self.total,
            "claimable_total": self.claimable_total,
        }


@dataclass(frozen=True)
class RoundDistribution:
    """How a round's pool is split at resolution."""
    outcome:           ResolutionOutcome
    total_stake:       int
    bond_at_risk:      int
    safe_bond:         int
    total_vote_weight: int
    platform_fee:      int
    juror_pool:        int
    winner_pool:       int

    @property
    def total_pool(self) -> int:
        return self.total_stake + self.bond_at_risk

    def to_round_result(self, round: int, **extra: Any) -> RoundResult:
        return RoundResult(
            round=             round,
            outcome=           self.outcome,
            total_stake=       self.total_stake,
            bond_at_risk=      self.bond_at_risk,
            safe_bond=         self.safe_bond,
            total_vote_weight= self.total_vote_weight,
            winner_pool=       self.winner_pool,
            juror_pool=        self.juror_pool,
            **extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome":           self.outcome.value,
            "total_stake":       self.total_stake,
            "bond_at_risk":      self.bond_at_risk,
            "safe_bond":         self.safe_bond,
            "total_vote_weight": self.total_vote_weight,
            "platform_fee":      self.platform_fee,
            "juror_pool":        self.juror_pool,
            "winner_pool":       self.winner_pool,
        }


@dataclass(frozen=True)
class ClaimCheck:
    """Observed claim amount versus the recomputed entitlement."""
    role:     Role
    expected: int
    observed: int

    @property
    def delta(self) -> int:
        return self.observed - self.expected

    @property
    def matches(self) -> bool:
        return self.delta == 0

    def __bool__(self) -> bool:
        return self.matches

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role":     self.role.value,
            "expected": self.expected,
            "observed": self.observed,
            "delta":    self.delta,
            "matches":  self.matches,
        }


# ─────────────────────────────────────────────────────────────
# Activity
# ─────────────────────────────────────────────────────────────

@dataclass
class ActivityEntry:
    """
    One reconstructed user-facing action. Derived, never persisted
    authoritatively: rebuilt from transaction logs on every fetch.
    """
    signature:     str
    slot:          int
    position:      int
    activity_type: ActivityType
    confidence:    Confidence
    block_time:    Optional[int] = None
    source:        Optional[str] = None   # event or instruction name
    subject:       Optional[str] = None
    dispute:       Optional[str] = None
    record:        Optional[str] = None
    round:         Optional[int] = None
    actor:         Optional[str] = None
    amount:        Optional[int] = None
    role:          Optional[Role] = None
    outcome:       Optional[ResolutionOutcome] = None
    balance_delta: Optional[int] = None
    success:       bool = True
    data:          Dict[str, Any] = field(default_factory=dict)
    events:        List[str] = field(default_factory=list)

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.slot, self.position)

    @property
    def timestamp(self) -> Optional[datetime]:
        if self.block_time is None:
            return None
        return datetime.fromtimestamp(self.block_time, tz=timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signature":     self.signature,
            "slot":          self.slot,
            "position":      self.position,
            "block_time":    self.block_time,
            "activity_type": self.activity_type.value,
            "confidence":    self.confidence.value,
            "source":        self.source,
            "subject":       self.subject,
            "dispute":       self.dispute,
            "record":        self.record,
            "round":         self.round,
            "actor":         self.actor,
            "amount":        self.amount,
            "role":          _enum_value(self.role),
            "outcome":       _enum_value(self.outcome),
            "balance_delta": self.balance_delta,
            "success":       self.success,
            "data":          dict(self.data),
            "events":        list(self.events),
        }
