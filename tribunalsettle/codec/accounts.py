"""
tribunalsettle/codec/accounts.py

Typed views of decoded ledger accounts and events.

decode_event / decode_account identify a payload by discriminator and
decode the remainder. Both fail soft (None) on unknown discriminators
and malformed bytes.

to_round_results / to_record turn decoded account fields into the
settlement model, normalising the dispute-indexed generation into the
same record types.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from tribunalsettle.codec import borsh
from tribunalsettle.codec.discriminators import (
    account_discriminator,
    event_discriminator,
    get_table,
)
from tribunalsettle.codec.schemas import get_schema
from tribunalsettle.core.constants import DISCRIMINATOR_SIZE
from tribunalsettle.core.exceptions import DecodeError, UnknownDiscriminatorError
from tribunalsettle.core.models import (
    ChallengerRecord,
    DefenderRecord,
    JurorRecord,
    ParticipantRecord,
    RoundResult,
    SchemaVersion,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decoded:
    name:   str
    fields: Dict[str, Any]

    def plain(self) -> Dict[str, Any]:
        return borsh.to_plain(self.fields)


# ── Events ────────────────────────────────────────────────────────────────────

def decode_event_strict(payload: bytes, version: SchemaVersion = SchemaVersion.ROUND) -> Decoded:
    name = get_table(version).event_name(payload)
    if name is None:
        raise UnknownDiscriminatorError(
            "No event matches discriminator",
            {"discriminator": bytes(payload[:DISCRIMINATOR_SIZE]).hex(), "version": version.value},
        )
    spec = get_schema(version).event(name)
    return Decoded(name, borsh.decode_strict(spec.layout, payload, DISCRIMINATOR_SIZE))


def decode_event(payload: bytes, version: SchemaVersion = SchemaVersion.ROUND) -> Optional[Decoded]:
    try:
        return decode_event_strict(payload, version)
    except DecodeError as e:
        logger.debug("Skipping undecodable event payload: %s", e)
        return None


def encode_event(name: str, values: Dict[str, Any], version: SchemaVersion = SchemaVersion.ROUND) -> bytes:
    spec = get_schema(version).event(name)
    if spec is None:
        raise DecodeError("Unknown event", {"name": name, "version": version.value})
    return event_discriminator(name) + borsh.encode(spec.layout, values)


# ── Accounts ──────────────────────────────────────────────────────────────────

def decode_account_strict(data: bytes, version: SchemaVersion = SchemaVersion.ROUND) -> Decoded:
    name = get_table(version).account_name(data)
    if name is None:
        raise UnknownDiscriminatorError(
            "No account matches discriminator",
            {"discriminator": bytes(data[:DISCRIMINATOR_SIZE]).hex(), "version": version.value},
        )
    layout = get_schema(version).accounts[name]
    return Decoded(name, borsh.decode_strict(layout, data, DISCRIMINATOR_SIZE))


def decode_account(data: bytes, version: SchemaVersion = SchemaVersion.ROUND) -> Optional[Decoded]:
    try:
        return decode_account_strict(data, version)
    except DecodeError as e:
        logger.debug("Skipping undecodable account: %s", e)
        return None


def encode_account(name: str, values: Dict[str, Any], version: SchemaVersion = SchemaVersion.ROUND) -> bytes:
    layout = get_schema(version).accounts.get(name)
    if layout is None:
        raise DecodeError("Unknown account", {"name": name, "version": version.value})
    return account_discriminator(name) + borsh.encode(layout, values)


# ── Model conversion ──────────────────────────────────────────────────────────

def to_round_results(decoded: Decoded) -> List[RoundResult]:
    """Round results stored in a subject escrow account."""
    if decoded.name != "Escrow":
        raise DecodeError("Not an escrow account", {"name": decoded.name})
    return [RoundResult(**fields) for fields in decoded.fields["rounds"]]


def find_round(decoded: Decoded, round: int) -> Optional[RoundResult]:
    for result in to_round_results(decoded):
        if result.round == round:
            return result
    return None


def to_record(decoded: Decoded) -> ParticipantRecord:
    """
    Participant record from a decoded account of either generation.

    Dispute-indexed records carry no round; they are keyed by their
    dispute account, which also stands in for the subject where the
    record does not name one.
    """
    f = decoded.fields
    name = decoded.name

    if name == "DefenderRecord":
        return DefenderRecord(
            owner=f["defender"], subject=f["subject_id"], round=f["round"], bond=f["bond"],
            source=f["source"], reward_claimed=f["reward_claimed"], created_at=f["bonded_at"],
        )
    if name == "StakerRecord":
        return DefenderRecord(
            owner=f["staker"], subject=f["subject"], round=0, bond=f["stake"],
            reward_claimed=f["reward_claimed"], created_at=f["staked_at"],
        )
    if name == "ChallengerRecord" and "subject_id" in f:
        return ChallengerRecord(
            owner=f["challenger"], subject=f["subject_id"], round=f["round"], stake=f["stake"],
            details_cid=f["details_cid"], reward_claimed=f["reward_claimed"],
            created_at=f["challenged_at"],
        )
    if name == "ChallengerRecord":
        return ChallengerRecord(
            owner=f["challenger"], subject=f["dispute"], round=0, stake=f["bond"],
            details_cid=f["details_cid"], reward_claimed=f["reward_claimed"],
            created_at=f["challenged_at"], dispute=f["dispute"],
        )
    if name == "JurorRecord":
        return JurorRecord(
            owner=f["juror"], subject=f["subject_id"], round=f["round"],
            voting_power=f["voting_power"], stake_allocation=f["stake_allocation"],
            choice=f["choice"], restore_choice=f["restore_choice"],
            is_restore_vote=f["is_restore_vote"], reward_claimed=f["reward_claimed"],
            stake_unlocked=f["stake_unlocked"], created_at=f["voted_at"],
            rationale_cid=f["rationale_cid"],
        )
    if name == "VoteRecord":
        return JurorRecord(
            owner=f["juror"], subject=f["dispute"], round=0,
            voting_power=f["voting_power"], stake_allocation=f["stake_allocated"],
            choice=f["choice"], reward_claimed=f["reward_claimed"],
            stake_unlocked=f["stake_unlocked"], created_at=f["voted_at"],
            rationale_cid=f["rationale_cid"], dispute=f["dispute"],
        )
    raise DecodeError("Account is not a participant record", {"name": name})
