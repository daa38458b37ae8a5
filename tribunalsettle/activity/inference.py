"""
tribunalsettle/activity/inference.py

Heuristic classification for transactions without a structured event.

The dispute-indexed program emits no events, and logs can be truncated.
Two weaker signals remain:

    diagnostics   the program's human-readable log lines
                  ("Juror claimed 1500 lamports", "Dispute resolved: ...")
    positions     the instruction's ordered account list; the role of each
                  position is known per instruction, or guessed generically
                  when the instruction itself is unknown

Everything classified here is marked INFERRED, or AMBIGUOUS when nothing
could be classified. Entries are surfaced either way, never dropped.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from tribunalsettle.codec.discriminators import get_table, instruction_name_from_log
from tribunalsettle.codec.schemas import InstructionSpec, get_schema
from tribunalsettle.core.models import ActivityType, ResolutionOutcome, Role, SchemaVersion


@dataclass
class Inference:
    activity_type: ActivityType
    amount:        Optional[int] = None
    role:          Optional[Role] = None
    outcome:       Optional[ResolutionOutcome] = None
    round:         Optional[int] = None
    detail:        Dict[str, object] = field(default_factory=dict)


# ── Diagnostics ───────────────────────────────────────────────────────────────

_OUTCOME_WORDS = {
    "ChallengerWins":  ResolutionOutcome.CHALLENGER_WINS,
    "Upheld":          ResolutionOutcome.CHALLENGER_WINS,
    "DefenderWins":    ResolutionOutcome.DEFENDER_WINS,
    "Dismissed":       ResolutionOutcome.DEFENDER_WINS,
    "NoParticipation": ResolutionOutcome.NO_PARTICIPATION,
    "None":            ResolutionOutcome.NONE,
}

_ROLE_WORDS = {"Defender": Role.DEFENDER, "Challenger": Role.CHALLENGER, "Juror": Role.JUROR}


def _resolved(m: re.Match) -> Inference:
    return Inference(
        ActivityType.RESOLVE,
        outcome=_OUTCOME_WORDS.get(m.group(1)),
        detail={"winner_pool": int(m.group(2)), "juror_pool": int(m.group(3))},
    )


def _claimed(m: re.Match) -> Inference:
    return Inference(ActivityType.CLAIM, amount=int(m.group(2)), role=_ROLE_WORDS[m.group(1)])


def _closed(m: re.Match) -> Inference:
    return Inference(ActivityType.CLOSE_RECORD, role=_ROLE_WORDS[m.group(1)], round=int(m.group(2)))


def _vote(m: re.Match) -> Inference:
    return Inference(
        ActivityType.VOTE,
        role=Role.JUROR,
        detail={"choice": m.group(1), "voting_power": int(m.group(2))},
    )


def _creator_sweep(m: re.Match) -> Inference:
    return Inference(ActivityType.SWEEP, amount=int(m.group(2)), round=int(m.group(1)))


def _treasury_sweep(m: re.Match) -> Inference:
    return Inference(
        ActivityType.SWEEP,
        amount=int(m.group(2)) + int(m.group(3)),
        round=int(m.group(1)),
        detail={"bot_reward": int(m.group(3))},
    )


def _amount(activity_type: ActivityType, role: Optional[Role] = None) -> Callable[[re.Match], Inference]:
    def build(m: re.Match) -> Inference:
        return Inference(activity_type, amount=int(m.group(1)), role=role)
    return build


# Ordered by priority: the first pattern matching any line wins.
DIAGNOSTICS: Tuple[Tuple[re.Pattern, Callable[[re.Match], Inference]], ...] = (
    (re.compile(r"^Dispute resolved: (\w+), winner_pool=(\d+), juror_pool=(\d+)"), _resolved),
    (re.compile(r"^(Defender|Challenger|Juror) claimed (\d+) lamports"), _claimed),
    (re.compile(r"^Juror stake unlocked: (\d+) lamports"), _amount(ActivityType.UNLOCK_STAKE, Role.JUROR)),
    (re.compile(r"^(Defender|Challenger|Juror) record closed for round (\d+)"), _closed),
    (re.compile(r"^Creator swept round (\d+): (\d+) unclaimed"), _creator_sweep),
    (re.compile(r"^Treasury swept round (\d+): (\d+) to treasury, (\d+) bot reward"), _treasury_sweep),
    (re.compile(r"^Restoration vote cast: (\w+) with (\d+) voting power"), _vote),
    (re.compile(r"^Vote cast: (\w+) with (\d+) voting power"), _vote),
    (re.compile(r"^New challenger added: (\d+) bond"), _amount(ActivityType.CHALLENGE, Role.CHALLENGER)),
    (re.compile(r"^Dispute submitted - escrow created \(stakes: (\d+)"), _amount(ActivityType.CHALLENGE, Role.CHALLENGER)),
    (re.compile(r"^New defender added: (\d+) lamports"), _amount(ActivityType.DEFEND, Role.DEFENDER)),
    (re.compile(r"^Stake added to subject: (\d+) lamports"), _amount(ActivityType.DEFEND, Role.DEFENDER)),
    (re.compile(r"^Juror registered with (\d+) lamports stake"), _amount(ActivityType.REGISTER_JUROR, Role.JUROR)),
    (re.compile(r"^Juror stake added: (\d+) lamports"), _amount(ActivityType.DEPOSIT, Role.JUROR)),
    (re.compile(r"^Added (\d+) lamports to pool"), _amount(ActivityType.DEPOSIT)),
    (re.compile(r"^Withdrew (\d+) lamports from pool"), _amount(ActivityType.WITHDRAW)),
    (re.compile(r"^Juror stake withdrawn: (\d+) returned"), _amount(ActivityType.WITHDRAW, Role.JUROR)),
)


def infer_from_messages(messages: Sequence[str]) -> Optional[Inference]:
    for pattern, build in DIAGNOSTICS:
        for message in messages:
            m = pattern.match(message)
            if m:
                return build(m)
    return None


# ── Instructions and positions ────────────────────────────────────────────────

GENERIC_ROLES = ("signer", "primary", "dispute", "record", "subject")


def identify_instruction(
    version:          SchemaVersion,
    instruction_data: bytes = b"",
    logged_names:     Sequence[str] = (),
) -> Optional[InstructionSpec]:
    """Instruction spec from the data discriminator, else from the logged name."""
    schema = get_schema(version)
    if instruction_data:
        name = get_table(version).instruction_name(instruction_data)
        if name is not None:
            return schema.instructions[name]
    for logged in logged_names:
        spec = schema.instructions.get(instruction_name_from_log(logged))
        if spec is not None:
            return spec
    return None


def assign_roles(
    accounts: Sequence[str],
    spec:     Optional[InstructionSpec] = None,
) -> Dict[str, object]:
    """
    Map account positions to role names.

    Positions past the known roles are collected under "remaining".
    """
    names = spec.accounts if spec is not None else GENERIC_ROLES
    roles: Dict[str, object] = {}
    for name, address in zip(names, accounts):
        roles[name] = address
    remaining: List[str] = list(accounts[len(names):])
    if remaining:
        roles["remaining"] = remaining
    if spec is not None and names:
        roles["signer"] = accounts[0] if accounts else None
    return roles


def record_address(roles: Dict[str, object]) -> Optional[str]:
    for name, address in roles.items():
        if name == "record" or name.endswith("_record"):
            if not name.startswith("creator_"):
                return address
    return None
