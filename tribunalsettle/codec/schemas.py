"""
tribunalsettle/codec/schemas.py

Per-version wire layouts of the ledger program.

Each SchemaVersion carries its own:
    events        structured event layouts, in precedence order
    accounts      account layouts (after the 8-byte discriminator)
    instructions  instruction names with their ordered account roles

Field order and width are part of the on-chain contract. Never reorder.

The dispute-indexed generation names its outcomes Upheld / Dismissed and
its votes Uphold / Dismiss. They decode straight into the round-indexed
enums (Upheld → ChallengerWins, Uphold → ForChallenger) so everything
downstream handles one vocabulary.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from tribunalsettle.codec.borsh import EnumType, StructLayout, VecType
from tribunalsettle.core.models import (
    ActivityType,
    BondSource,
    ResolutionOutcome,
    RestoreVoteChoice,
    Role,
    SchemaVersion,
    VoteChoice,
)


# ─────────────────────────────────────────────────────────────
# Shared enums
# ─────────────────────────────────────────────────────────────

OUTCOME = EnumType("ResolutionOutcome", (
    ResolutionOutcome.NONE,
    ResolutionOutcome.CHALLENGER_WINS,
    ResolutionOutcome.DEFENDER_WINS,
    ResolutionOutcome.NO_PARTICIPATION,
))
VOTE_CHOICE    = EnumType("VoteChoice", (VoteChoice.FOR_CHALLENGER, VoteChoice.FOR_DEFENDER))
RESTORE_CHOICE = EnumType("RestoreVoteChoice", (
    RestoreVoteChoice.FOR_RESTORATION,
    RestoreVoteChoice.AGAINST_RESTORATION,
))
BOND_SOURCE = EnumType("BondSource", (BondSource.DIRECT, BondSource.POOL))
CLAIM_ROLE  = EnumType("ClaimRole", (Role.DEFENDER, Role.CHALLENGER, Role.JUROR))
POOL_TYPE   = EnumType("PoolType", ("Defender", "Challenger", "Juror"))
DISPUTE_TYPE = EnumType("DisputeType", (
    "Other", "Breach", "Fraud", "QualityDispute", "NonDelivery",
    "Misrepresentation", "PolicyViolation", "DamagesClaim",
))


# ─────────────────────────────────────────────────────────────
# Descriptors
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class EventSpec:
    """How a decoded event maps onto an activity entry."""
    layout:        StructLayout
    activity_type: ActivityType
    actor_field:   Optional[str] = None
    amount_field:  Optional[str] = None

    @property
    def name(self) -> str:
        return self.layout.name


@dataclass(frozen=True)
class InstructionSpec:
    name:          str                 # snake_case, as hashed for the discriminator
    activity_type: ActivityType
    accounts:      Tuple[str, ...]     # ordered account roles; the first is the signer


@dataclass(frozen=True)
class Schema:
    version:      SchemaVersion
    events:       Tuple[EventSpec, ...]
    accounts:     Dict[str, StructLayout]
    instructions: Dict[str, InstructionSpec]

    def event(self, name: str) -> Optional[EventSpec]:
        for spec in self.events:
            if spec.name == name:
                return spec
        return None

    def precedence(self, name: str) -> int:
        for i, spec in enumerate(self.events):
            if spec.name == name:
                return i
        return len(self.events)


def _struct(name: str, *fields) -> StructLayout:
    return StructLayout(name, tuple(fields))


def _ix(name: str, activity_type: ActivityType, *accounts: str) -> InstructionSpec:
    return InstructionSpec(name, activity_type, tuple(accounts))


# ─────────────────────────────────────────────────────────────
# Round-indexed generation
# ─────────────────────────────────────────────────────────────

ROUND_RESULT = _struct(
    "RoundResult",
    ("round", "u32"),
    ("creator", "pubkey"),
    ("resolved_at", "i64"),
    ("outcome", OUTCOME),
    ("total_stake", "u64"),
    ("bond_at_risk", "u64"),
    ("safe_bond", "u64"),
    ("total_vote_weight", "u64"),
    ("winner_pool", "u64"),
    ("juror_pool", "u64"),
    ("defender_count", "u16"),
    ("challenger_count", "u16"),
    ("juror_count", "u16"),
    ("defender_claims", "u16"),
    ("challenger_claims", "u16"),
    ("juror_claims", "u16"),
)

_ROUND_ACCOUNTS = {
    "Escrow": _struct(
        "Escrow",
        ("subject_id", "pubkey"),
        ("balance", "u64"),
        ("rounds", VecType(ROUND_RESULT)),
        ("bump", "u8"),
    ),
    "ChallengerRecord": _struct(
        "ChallengerRecord",
        ("subject_id", "pubkey"),
        ("challenger", "pubkey"),
        ("round", "u32"),
        ("stake", "u64"),
        ("details_cid", "string"),
        ("reward_claimed", "bool"),
        ("bump", "u8"),
        ("challenged_at", "i64"),
    ),
    "DefenderRecord": _struct(
        "DefenderRecord",
        ("subject_id", "pubkey"),
        ("defender", "pubkey"),
        ("round", "u32"),
        ("bond", "u64"),
        ("source", BOND_SOURCE),
        ("reward_claimed", "bool"),
        ("bump", "u8"),
        ("bonded_at", "i64"),
    ),
    "JurorRecord": _struct(
        "JurorRecord",
        ("subject_id", "pubkey"),
        ("juror", "pubkey"),
        ("round", "u32"),
        ("choice", VOTE_CHOICE),
        ("restore_choice", RESTORE_CHOICE),
        ("is_restore_vote", "bool"),
        ("voting_power", "u64"),
        ("stake_allocation", "u64"),
        ("reward_claimed", "bool"),
        ("stake_unlocked", "bool"),
        ("bump", "u8"),
        ("voted_at", "i64"),
        ("rationale_cid", "string"),
    ),
    "Dispute": _struct(
        "Dispute",
        ("subject_id", "pubkey"),
        ("round", "u32"),
        ("status", EnumType("DisputeStatus", ("None", "Pending", "Resolved"))),
        ("dispute_type", DISPUTE_TYPE),
        ("total_stake", "u64"),
        ("challenger_count", "u16"),
        ("bond_at_risk", "u64"),
        ("defender_count", "u16"),
        ("votes_for_challenger", "u64"),
        ("votes_for_defender", "u64"),
        ("vote_count", "u16"),
        ("voting_starts_at", "i64"),
        ("voting_ends_at", "i64"),
        ("outcome", OUTCOME),
        ("resolved_at", "i64"),
        ("is_restore", "bool"),
        ("restore_stake", "u64"),
        ("restorer", "pubkey"),
        ("details_cid", "string"),
        ("bump", "u8"),
        ("created_at", "i64"),
    ),
    "Subject": _struct(
        "Subject",
        ("subject_id", "pubkey"),
        ("creator", "pubkey"),
        ("details_cid", "string"),
        ("round", "u32"),
        ("available_bond", "u64"),
        ("defender_count", "u16"),
        ("status", EnumType("SubjectStatus", ("Dormant", "Valid", "Disputed", "Invalid", "Restoring"))),
        ("match_mode", "bool"),
        ("voting_period", "i64"),
        ("dispute", "pubkey"),
        ("bump", "u8"),
        ("created_at", "i64"),
        ("updated_at", "i64"),
        ("last_dispute_total", "u64"),
        ("last_voting_period", "i64"),
    ),
    "DefenderPool": _struct(
        "DefenderPool",
        ("owner", "pubkey"),
        ("balance", "u64"),
        ("max_bond", "u64"),
        ("bump", "u8"),
        ("created_at", "i64"),
        ("updated_at", "i64"),
    ),
    "ChallengerPool": _struct(
        "ChallengerPool",
        ("owner", "pubkey"),
        ("balance", "u64"),
        ("reputation", "u64"),
        ("bump", "u8"),
        ("created_at", "i64"),
    ),
    "JurorPool": _struct(
        "JurorPool",
        ("owner", "pubkey"),
        ("balance", "u64"),
        ("reputation", "u64"),
        ("bump", "u8"),
        ("created_at", "i64"),
    ),
    "ProtocolConfig": _struct(
        "ProtocolConfig",
        ("authority", "pubkey"),
        ("treasury", "pubkey"),
        ("bump", "u8"),
    ),
}

# Precedence: when one transaction emits several events, the first listed
# here describes the entry. Settlement events outrank the bookkeeping
# events that accompany them.
_ROUND_EVENTS = (
    EventSpec(
        _struct("DisputeResolvedEvent",
                ("subject_id", "pubkey"), ("round", "u32"), ("outcome", OUTCOME),
                ("total_stake", "u64"), ("bond_at_risk", "u64"), ("winner_pool", "u64"),
                ("juror_pool", "u64"), ("resolved_at", "i64"), ("timestamp", "i64")),
        ActivityType.RESOLVE,
    ),
    EventSpec(
        _struct("RestoreResolvedEvent",
                ("subject_id", "pubkey"), ("round", "u32"), ("outcome", OUTCOME),
                ("timestamp", "i64")),
        ActivityType.RESOLVE,
    ),
    EventSpec(
        _struct("RewardClaimedEvent",
                ("subject_id", "pubkey"), ("round", "u32"), ("claimer", "pubkey"),
                ("role", CLAIM_ROLE), ("amount", "u64"), ("timestamp", "i64")),
        ActivityType.CLAIM, "claimer", "amount",
    ),
    EventSpec(
        _struct("StakeUnlockedEvent",
                ("subject_id", "pubkey"), ("round", "u32"), ("juror", "pubkey"),
                ("amount", "u64"), ("timestamp", "i64")),
        ActivityType.UNLOCK_STAKE, "juror", "amount",
    ),
    EventSpec(
        _struct("RecordClosedEvent",
                ("subject_id", "pubkey"), ("round", "u32"), ("owner", "pubkey"),
                ("role", CLAIM_ROLE), ("rent_returned", "u64"), ("timestamp", "i64")),
        ActivityType.CLOSE_RECORD, "owner", "rent_returned",
    ),
    EventSpec(
        _struct("RoundSweptEvent",
                ("subject_id", "pubkey"), ("round", "u32"), ("sweeper", "pubkey"),
                ("unclaimed", "u64"), ("bot_reward", "u64"), ("timestamp", "i64")),
        ActivityType.SWEEP, "sweeper", "unclaimed",
    ),
    EventSpec(
        _struct("DisputeCreatedEvent",
                ("subject_id", "pubkey"), ("round", "u32"), ("creator", "pubkey"),
                ("stake", "u64"), ("bond_at_risk", "u64"), ("voting_ends_at", "i64"),
                ("timestamp", "i64")),
        ActivityType.CHALLENGE, "creator", "stake",
    ),
    EventSpec(
        _struct("RestoreSubmittedEvent",
                ("subject_id", "pubkey"), ("round", "u32"), ("restorer", "pubkey"),
                ("stake", "u64"), ("details_cid", "string"), ("voting_period", "i64"),
                ("timestamp", "i64")),
        ActivityType.RESTORE, "restorer", "stake",
    ),
    EventSpec(
        _struct("ChallengerJoinedEvent",
                ("subject_id", "pubkey"), ("round", "u32"), ("challenger", "pubkey"),
                ("stake", "u64"), ("total_stake", "u64"), ("timestamp", "i64")),
        ActivityType.CHALLENGE, "challenger", "stake",
    ),
    EventSpec(
        _struct("VoteEvent",
                ("subject_id", "pubkey"), ("round", "u32"), ("juror", "pubkey"),
                ("choice", VOTE_CHOICE), ("voting_power", "u64"),
                ("rationale_cid", "string"), ("timestamp", "i64")),
        ActivityType.VOTE, "juror",
    ),
    EventSpec(
        _struct("RestoreVoteEvent",
                ("subject_id", "pubkey"), ("round", "u32"), ("juror", "pubkey"),
                ("choice", RESTORE_CHOICE), ("voting_power", "u64"),
                ("rationale_cid", "string"), ("timestamp", "i64")),
        ActivityType.VOTE, "juror",
    ),
    EventSpec(
        _struct("AddToVoteEvent",
                ("subject_id", "pubkey"), ("round", "u32"), ("juror", "pubkey"),
                ("additional_stake", "u64"), ("additional_voting_power", "u64"),
                ("total_stake", "u64"), ("total_voting_power", "u64"), ("timestamp", "i64")),
        ActivityType.VOTE, "juror", "additional_stake",
    ),
    EventSpec(
        _struct("BondAddedEvent",
                ("subject_id", "pubkey"), ("defender", "pubkey"), ("round", "u32"),
                ("amount", "u64"), ("source", BOND_SOURCE), ("timestamp", "i64")),
        ActivityType.DEFEND, "defender", "amount",
    ),
    EventSpec(
        _struct("BondWithdrawnEvent",
                ("defender", "pubkey"), ("amount", "u64"), ("timestamp", "i64")),
        ActivityType.WITHDRAW, "defender", "amount",
    ),
    EventSpec(
        _struct("SubjectCreatedEvent",
                ("subject_id", "pubkey"), ("creator", "pubkey"), ("match_mode", "bool"),
                ("voting_period", "i64"), ("timestamp", "i64")),
        ActivityType.CREATE_SUBJECT, "creator",
    ),
    EventSpec(
        _struct("PoolDepositEvent",
                ("pool_type", POOL_TYPE), ("owner", "pubkey"), ("amount", "u64"),
                ("timestamp", "i64")),
        ActivityType.DEPOSIT, "owner", "amount",
    ),
    EventSpec(
        _struct("PoolWithdrawEvent",
                ("pool_type", POOL_TYPE), ("owner", "pubkey"), ("amount", "u64"),
                ("slashed", "u64"), ("timestamp", "i64")),
        ActivityType.WITHDRAW, "owner", "amount",
    ),
    EventSpec(
        _struct("SubjectStatusChangedEvent",
                ("subject_id", "pubkey"), ("old_status", "u8"), ("new_status", "u8"),
                ("timestamp", "i64")),
        ActivityType.ADMIN,
    ),
)

_A = ActivityType
_ROUND_INSTRUCTIONS = {spec.name: spec for spec in (
    _ix("initialize_config", _A.ADMIN, "authority", "config", "system_program"),
    _ix("update_treasury", _A.ADMIN, "authority", "config"),
    _ix("create_defender_pool", _A.DEPOSIT, "owner", "defender_pool", "system_program"),
    _ix("deposit_defender_pool", _A.DEPOSIT, "owner", "defender_pool", "system_program"),
    _ix("withdraw_defender_pool", _A.WITHDRAW, "owner", "defender_pool", "system_program"),
    _ix("update_max_bond", _A.ADMIN, "owner", "defender_pool"),
    _ix("create_subject", _A.CREATE_SUBJECT, "creator", "subject", "dispute", "escrow",
        "defender_pool", "defender_record", "system_program"),
    _ix("add_bond_direct", _A.DEFEND, "defender", "subject", "defender_record",
        "defender_pool", "dispute", "system_program"),
    _ix("add_bond_from_pool", _A.DEFEND, "defender", "subject", "defender_pool",
        "defender_record", "dispute", "system_program"),
    _ix("register_juror", _A.REGISTER_JUROR, "juror", "juror_pool", "system_program"),
    _ix("add_juror_stake", _A.DEPOSIT, "juror", "juror_pool", "system_program"),
    _ix("withdraw_juror_stake", _A.WITHDRAW, "juror", "juror_pool", "system_program"),
    _ix("unregister_juror", _A.WITHDRAW, "juror", "juror_pool", "system_program"),
    _ix("register_challenger", _A.DEPOSIT, "challenger", "challenger_pool", "system_program"),
    _ix("add_challenger_stake", _A.DEPOSIT, "challenger", "challenger_pool", "system_program"),
    _ix("withdraw_challenger_stake", _A.WITHDRAW, "challenger", "challenger_pool",
        "protocol_config", "treasury", "system_program"),
    _ix("create_dispute", _A.CHALLENGE, "challenger", "subject", "dispute", "escrow",
        "challenger_record", "challenger_pool", "creator_defender_pool",
        "creator_defender_record", "system_program"),
    _ix("join_challengers", _A.CHALLENGE, "challenger", "subject", "dispute",
        "challenger_record", "challenger_pool", "system_program"),
    _ix("vote_on_dispute", _A.VOTE, "juror", "juror_pool", "subject", "dispute",
        "juror_record", "system_program"),
    _ix("vote_on_restore", _A.VOTE, "juror", "juror_pool", "subject", "dispute",
        "juror_record", "system_program"),
    _ix("add_to_vote", _A.VOTE, "juror", "juror_pool", "subject", "dispute",
        "juror_record", "system_program"),
    _ix("resolve_dispute", _A.RESOLVE, "resolver", "subject", "dispute", "escrow",
        "protocol_config", "treasury", "creator_defender_pool",
        "creator_defender_record", "system_program"),
    _ix("submit_restore", _A.RESTORE, "restorer", "subject", "dispute", "escrow",
        "challenger_record", "system_program"),
    _ix("claim_defender", _A.CLAIM, "defender", "subject", "escrow", "defender_record",
        "defender_pool", "system_program"),
    _ix("claim_challenger", _A.CLAIM, "challenger", "subject", "escrow",
        "challenger_record", "challenger_pool", "system_program"),
    _ix("claim_juror", _A.CLAIM, "juror", "subject", "escrow", "juror_record",
        "juror_pool", "system_program"),
    _ix("unlock_juror_stake", _A.UNLOCK_STAKE, "juror", "subject", "escrow",
        "juror_record", "juror_pool", "system_program"),
    _ix("close_defender_record", _A.CLOSE_RECORD, "defender", "subject", "escrow",
        "defender_record", "system_program"),
    _ix("close_challenger_record", _A.CLOSE_RECORD, "challenger", "subject", "escrow",
        "challenger_record", "system_program"),
    _ix("close_juror_record", _A.CLOSE_RECORD, "juror", "subject", "escrow",
        "juror_record", "system_program"),
    _ix("sweep_round_creator", _A.SWEEP, "creator", "subject", "escrow", "system_program"),
    _ix("sweep_round_treasury", _A.SWEEP, "sweeper", "subject", "escrow",
        "protocol_config", "treasury", "system_program"),
)}


# ─────────────────────────────────────────────────────────────
# Dispute-indexed generation
# ─────────────────────────────────────────────────────────────

_DISPUTE_ACCOUNTS = {
    "ChallengerAccount": _struct(
        "ChallengerAccount",
        ("challenger", "pubkey"),
        ("reputation", "u16"),
        ("disputes_submitted", "u64"),
        ("disputes_upheld", "u64"),
        ("disputes_dismissed", "u64"),
        ("bump", "u8"),
        ("created_at", "i64"),
        ("last_dispute_at", "i64"),
    ),
    "ChallengerRecord": _struct(
        "ChallengerRecord",
        ("dispute", "pubkey"),
        ("challenger", "pubkey"),
        ("challenger_account", "pubkey"),
        ("bond", "u64"),
        ("details_cid", "string"),
        ("reward_claimed", "bool"),
        ("bump", "u8"),
        ("challenged_at", "i64"),
    ),
    "Dispute": _struct(
        "Dispute",
        ("subject", "pubkey"),
        ("dispute_type", DISPUTE_TYPE),
        ("total_bond", "u64"),
        ("stake_held", "u64"),
        ("direct_stake_held", "u64"),
        ("challenger_count", "u16"),
        ("status", EnumType("DisputeStatus", ("Pending", "Resolved"))),
        ("outcome", OUTCOME),
        ("votes_favor_weight", "u64"),
        ("votes_against_weight", "u64"),
        ("vote_count", "u16"),
        ("voting_started", "bool"),
        ("voting_starts_at", "i64"),
        ("voting_ends_at", "i64"),
        ("resolved_at", "i64"),
        ("bump", "u8"),
        ("created_at", "i64"),
        ("pool_reward_claimed", "bool"),
    ),
    "JurorAccount": _struct(
        "JurorAccount",
        ("juror", "pubkey"),
        ("total_stake", "u64"),
        ("available_stake", "u64"),
        ("reputation", "u16"),
        ("votes_cast", "u64"),
        ("correct_votes", "u64"),
        ("is_active", "bool"),
        ("bump", "u8"),
        ("joined_at", "i64"),
        ("last_vote_at", "i64"),
    ),
    "StakerPool": _struct(
        "StakerPool",
        ("owner", "pubkey"),
        ("total_stake", "u64"),
        ("available", "u64"),
        ("held", "u64"),
        ("subject_count", "u32"),
        ("pending_disputes", "u32"),
        ("bump", "u8"),
        ("created_at", "i64"),
        ("updated_at", "i64"),
    ),
    "StakerRecord": _struct(
        "StakerRecord",
        ("subject", "pubkey"),
        ("staker", "pubkey"),
        ("stake", "u64"),
        ("reward_claimed", "bool"),
        ("bump", "u8"),
        ("staked_at", "i64"),
    ),
    "VoteRecord": _struct(
        "VoteRecord",
        ("dispute", "pubkey"),
        ("juror", "pubkey"),
        ("juror_account", "pubkey"),
        ("choice", VOTE_CHOICE),
        ("stake_allocated", "u64"),
        ("voting_power", "u64"),
        ("unlock_at", "i64"),
        ("reputation_processed", "bool"),
        ("reward_claimed", "bool"),
        ("stake_unlocked", "bool"),
        ("bump", "u8"),
        ("voted_at", "i64"),
        ("rationale_cid", "string"),
    ),
}

_DISPUTE_INSTRUCTIONS = {spec.name: spec for spec in (
    _ix("register_juror", _A.REGISTER_JUROR, "juror", "juror_account", "system_program"),
    _ix("add_juror_stake", _A.DEPOSIT, "juror", "juror_account", "system_program"),
    _ix("withdraw_juror_stake", _A.WITHDRAW, "juror", "juror_account", "system_program"),
    _ix("unregister_juror", _A.WITHDRAW, "juror", "juror_account", "system_program"),
    _ix("create_pool", _A.DEPOSIT, "owner", "staker_pool", "system_program"),
    _ix("stake_pool", _A.DEPOSIT, "owner", "staker_pool", "system_program"),
    _ix("withdraw_pool", _A.WITHDRAW, "owner", "staker_pool", "system_program"),
    _ix("create_subject", _A.CREATE_SUBJECT, "creator", "subject", "staker_record",
        "system_program"),
    _ix("create_linked_subject", _A.CREATE_SUBJECT, "owner", "staker_pool", "subject",
        "system_program"),
    _ix("create_free_subject", _A.CREATE_SUBJECT, "creator", "subject", "system_program"),
    _ix("add_to_stake", _A.DEFEND, "staker", "subject", "staker_record", "system_program"),
    _ix("submit_dispute", _A.CHALLENGE, "challenger", "subject", "staker_pool",
        "challenger_account", "dispute", "challenger_record", "system_program"),
    _ix("submit_free_dispute", _A.CHALLENGE, "challenger", "subject", "dispute",
        "system_program"),
    _ix("add_to_dispute", _A.CHALLENGE, "challenger", "subject", "staker_pool",
        "challenger_account", "dispute", "challenger_record", "system_program"),
    _ix("vote_on_dispute", _A.VOTE, "juror", "juror_account", "subject", "dispute",
        "vote_record", "system_program"),
    _ix("add_to_vote", _A.VOTE, "juror", "juror_account", "subject", "dispute",
        "vote_record", "system_program"),
    _ix("resolve_dispute", _A.RESOLVE, "resolver", "dispute", "subject", "staker_pool",
        "system_program"),
    _ix("process_vote_result", _A.RESOLVE, "juror", "juror_account", "dispute", "subject",
        "vote_record"),
    _ix("claim_juror_reward", _A.CLAIM, "juror", "subject", "staker_pool", "dispute",
        "vote_record", "system_program"),
    _ix("claim_challenger_reward", _A.CLAIM, "challenger", "challenger_account", "subject",
        "staker_pool", "dispute", "challenger_record", "system_program"),
    _ix("claim_staker_reward", _A.CLAIM, "staker", "subject", "dispute", "staker_record",
        "system_program"),
    _ix("claim_pool_reward", _A.CLAIM, "owner", "subject", "staker_pool", "dispute",
        "system_program"),
)}


SCHEMAS: Dict[SchemaVersion, Schema] = {
    SchemaVersion.ROUND: Schema(
        version=      SchemaVersion.ROUND,
        events=       _ROUND_EVENTS,
        accounts=     _ROUND_ACCOUNTS,
        instructions= _ROUND_INSTRUCTIONS,
    ),
    SchemaVersion.DISPUTE: Schema(
        version=      SchemaVersion.DISPUTE,
        events=       (),
        accounts=     _DISPUTE_ACCOUNTS,
        instructions= _DISPUTE_INSTRUCTIONS,
    ),
}


def get_schema(version: SchemaVersion) -> Schema:
    try:
        return SCHEMAS[version]
    except KeyError:
        raise ValueError(f"Unknown schema version: {version!r}")
