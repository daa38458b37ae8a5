"""
tests/test_codec.py

Discriminator tables and the Borsh decoder.

Run:
    pytest tests/test_codec.py -v
"""

import struct

import pytest

from helpers.tx_builder import address

from tribunalsettle.codec import borsh
from tribunalsettle.codec.accounts import (
    decode_account,
    decode_account_strict,
    decode_event,
    decode_event_strict,
    encode_account,
    encode_event,
    find_round,
    to_record,
    to_round_results,
)
from tribunalsettle.codec.discriminators import (
    account_discriminator,
    event_discriminator,
    get_table,
    instruction_discriminator,
    instruction_name_from_log,
)
from tribunalsettle.codec.schemas import get_schema
from tribunalsettle.core.exceptions import DecodeError, UnknownDiscriminatorError
from tribunalsettle.core.models import (
    BondSource,
    ChallengerRecord,
    JurorRecord,
    ResolutionOutcome,
    RestoreVoteChoice,
    Role,
    SchemaVersion,
    VoteChoice,
)


SUBJECT = address(1)
JUROR   = address(2)
CREATOR = address(3)


def _vote_values(**overrides):
    values = {
        "subject_id":    SUBJECT,
        "round":         3,
        "juror":         JUROR,
        "choice":        VoteChoice.FOR_DEFENDER,
        "voting_power":  5_000_000_000,
        "rationale_cid": "bafy-rationale",
        "timestamp":     1_718_000_123,
    }
    values.update(overrides)
    return values


def _round_values(round, outcome, **overrides):
    values = {
        "round":             round,
        "creator":           CREATOR,
        "resolved_at":       1_718_000_000,
        "outcome":           outcome,
        "total_stake":       1_000,
        "bond_at_risk":      0,
        "safe_bond":         0,
        "total_vote_weight": 10,
        "winner_pool":       800,
        "juror_pool":        190,
        "defender_count":    1,
        "challenger_count":  2,
        "juror_count":       3,
        "defender_claims":   0,
        "challenger_claims": 1,
        "juror_claims":      0,
    }
    values.update(overrides)
    return values


# ─────────────────────────────────────────────────────────────
# Discriminators
# ─────────────────────────────────────────────────────────────

class TestDiscriminators:

    @pytest.mark.parametrize("name,expected", [
        ("AddToVoteEvent",       "e4f9655d052fbe42"),
        ("DisputeResolvedEvent", "982562f5e527964e"),
        ("RewardClaimedEvent",   "f62bd7e45231e638"),
        ("VoteEvent",            "c347fa697877ea86"),
    ])
    def test_event_vectors(self, name, expected):
        assert event_discriminator(name).hex() == expected

    @pytest.mark.parametrize("name,expected", [
        ("Escrow",      "1fd57bbbba16da9b"),
        ("JurorRecord", "904c5e0c66cf9728"),
        ("VoteRecord",  "70097ba5ea099da7"),
    ])
    def test_account_vectors(self, name, expected):
        assert account_discriminator(name).hex() == expected

    def test_instruction_vector(self):
        assert instruction_discriminator("claim_juror").hex() == "ef3a0dab896d4c1e"

    def test_tables_cover_every_layout(self):
        for version in SchemaVersion:
            schema = get_schema(version)
            table  = get_table(version)
            assert len(table.events) == len(schema.events)
            assert len(table.accounts) == len(schema.accounts)
            assert len(table.instructions) == len(schema.instructions)

    def test_table_is_built_once_and_read_only(self):
        table = get_table(SchemaVersion.ROUND)
        assert get_table(SchemaVersion.ROUND) is table
        with pytest.raises(TypeError):
            table.events[b"\x00" * 8] = "Forged"

    def test_lookup_by_prefix(self):
        table = get_table(SchemaVersion.ROUND)
        assert table.event_name(event_discriminator("VoteEvent") + b"\xff" * 40) == "VoteEvent"
        assert table.event_name(b"\x00" * 16) is None

    def test_dispute_generation_has_no_events(self):
        table = get_table(SchemaVersion.DISPUTE)
        assert not table.events
        assert table.account_name(account_discriminator("VoteRecord")) == "VoteRecord"

    @pytest.mark.parametrize("logged,expected", [
        ("VoteOnDispute", "vote_on_dispute"),
        ("ClaimJuror", "claim_juror"),
        ("SweepRoundTreasury", "sweep_round_treasury"),
        ("register_juror", "register_juror"),
    ])
    def test_instruction_name_from_log(self, logged, expected):
        assert instruction_name_from_log(logged) == expected


# ─────────────────────────────────────────────────────────────
# Events
# ─────────────────────────────────────────────────────────────

class TestEvents:

    def test_vote_event_roundtrip(self):
        payload = encode_event("VoteEvent", _vote_values())
        decoded = decode_event(payload)
        assert decoded.name == "VoteEvent"
        assert decoded.fields == _vote_values()
        assert decoded.plain()["choice"] == "ForDefender"

    def test_reward_claimed_role_decodes_to_model_enum(self):
        payload = encode_event("RewardClaimedEvent", {
            "subject_id": SUBJECT, "round": 1, "claimer": JUROR,
            "role": Role.JUROR, "amount": 95, "timestamp": 0,
        })
        assert decode_event(payload).fields["role"] is Role.JUROR

    def test_unknown_discriminator_fails_soft(self):
        payload = b"\xde\xad\xbe\xef" * 2 + b"\x00" * 32
        assert decode_event(payload) is None
        with pytest.raises(UnknownDiscriminatorError):
            decode_event_strict(payload)

    def test_truncated_payload_fails_soft(self):
        payload = encode_event("VoteEvent", _vote_values())
        assert decode_event(payload[:-3]) is None
        with pytest.raises(DecodeError):
            decode_event_strict(payload[:-3])

    def test_out_of_range_enum_rejected(self):
        payload = bytearray(encode_event("VoteEvent", _vote_values()))
        # discriminator + pubkey + u32 round + pubkey → choice byte
        payload[8 + 32 + 4 + 32] = 7
        assert decode_event(bytes(payload)) is None

    def test_unknown_event_name_cannot_be_encoded(self):
        with pytest.raises(DecodeError):
            encode_event("NoSuchEvent", {})


# ─────────────────────────────────────────────────────────────
# Accounts
# ─────────────────────────────────────────────────────────────

class TestAccounts:

    def test_escrow_round_results(self):
        data = encode_account("Escrow", {
            "subject_id": SUBJECT,
            "balance":    2_000,
            "rounds": [
                _round_values(0, ResolutionOutcome.DEFENDER_WINS),
                _round_values(1, ResolutionOutcome.CHALLENGER_WINS),
            ],
            "bump": 255,
        })
        decoded = decode_account(data + b"\x00" * 64)   # spare account space
        assert decoded.name == "Escrow"

        results = to_round_results(decoded)
        assert [r.round for r in results] == [0, 1]
        assert results[1].outcome is ResolutionOutcome.CHALLENGER_WINS
        assert results[1].creator == CREATOR
        assert find_round(decoded, 1).winner_pool == 800
        assert find_round(decoded, 9) is None

    def test_round_juror_record(self):
        data = encode_account("JurorRecord", {
            "subject_id": SUBJECT, "juror": JUROR, "round": 4,
            "choice": VoteChoice.FOR_CHALLENGER, "restore_choice": RestoreVoteChoice.AGAINST_RESTORATION,
            "is_restore_vote": False, "voting_power": 42, "stake_allocation": 1_000,
            "reward_claimed": False, "stake_unlocked": True, "bump": 1,
            "voted_at": 99, "rationale_cid": "",
        })
        record = to_record(decode_account_strict(data))
        assert isinstance(record, JurorRecord)
        assert (record.owner, record.subject, record.round) == (JUROR, SUBJECT, 4)
        assert record.voting_power == 42
        assert record.stake_unlocked is True

    def test_defender_record_source(self):
        data = encode_account("DefenderRecord", {
            "subject_id": SUBJECT, "defender": CREATOR, "round": 2, "bond": 500,
            "source": BondSource.POOL, "reward_claimed": True, "bump": 1, "bonded_at": 5,
        })
        record = to_record(decode_account(data))
        assert record.source is BondSource.POOL
        assert record.reward_claimed is True

    def test_dispute_generation_vote_record(self):
        dispute = address(9)
        data = encode_account("VoteRecord", {
            "dispute": dispute, "juror": JUROR, "juror_account": address(10),
            "choice": VoteChoice.FOR_CHALLENGER, "stake_allocated": 300,
            "voting_power": 17, "unlock_at": 0, "reputation_processed": True,
            "reward_claimed": False, "stake_unlocked": False, "bump": 1,
            "voted_at": 7, "rationale_cid": "cid",
        }, SchemaVersion.DISPUTE)
        record = to_record(decode_account(data, SchemaVersion.DISPUTE))
        assert record.round == 0
        assert record.dispute == dispute
        assert record.subject == dispute
        assert record.choice is VoteChoice.FOR_CHALLENGER

    def test_dispute_generation_challenger_record(self):
        dispute = address(9)
        data = encode_account("ChallengerRecord", {
            "dispute": dispute, "challenger": CREATOR, "challenger_account": address(11),
            "bond": 700, "details_cid": "", "reward_claimed": False, "bump": 1,
            "challenged_at": 0,
        }, SchemaVersion.DISPUTE)
        record = to_record(decode_account(data, SchemaVersion.DISPUTE))
        assert isinstance(record, ChallengerRecord)
        assert record.stake == 700

    def test_non_record_account_rejected(self):
        data = encode_account("ProtocolConfig", {"authority": SUBJECT, "treasury": JUROR, "bump": 1})
        with pytest.raises(DecodeError):
            to_record(decode_account(data))
        with pytest.raises(DecodeError):
            to_round_results(decode_account(data))


# ─────────────────────────────────────────────────────────────
# Borsh primitives
# ─────────────────────────────────────────────────────────────

class TestBorsh:

    LAYOUT = borsh.StructLayout("Sample", (
        ("flag", "bool"),
        ("big", "u128"),
        ("delta", "i64"),
        ("name", "string"),
        ("items", borsh.VecType("u16")),
    ))

    def test_primitive_roundtrip(self):
        values = {"flag": True, "big": (1 << 100) + 5, "delta": -42, "name": "défense", "items": [1, 2, 65535]}
        assert borsh.decode_strict(self.LAYOUT, borsh.encode(self.LAYOUT, values)) == values

    def test_invalid_bool_byte(self):
        data = bytearray(borsh.encode(self.LAYOUT, {
            "flag": False, "big": 0, "delta": 0, "name": "", "items": [],
        }))
        data[0] = 2
        with pytest.raises(DecodeError):
            borsh.decode_strict(self.LAYOUT, bytes(data))

    def test_impossible_vector_length(self):
        layout = borsh.StructLayout("V", (("items", borsh.VecType("u64")),))
        assert borsh.decode(layout, struct.pack("<I", 1_000_000)) is None

    def test_trailing_bytes(self):
        layout = borsh.StructLayout("U", (("x", "u8"),))
        assert borsh.decode(layout, b"\x01\x02") == {"x": 1}
        assert borsh.decode(layout, b"\x01\x02", allow_trailing=False) is None

    def test_encode_value_out_of_range(self):
        layout = borsh.StructLayout("U", (("x", "u8"),))
        with pytest.raises(DecodeError):
            borsh.encode(layout, {"x": 256})

    def test_encode_missing_field(self):
        layout = borsh.StructLayout("U", (("x", "u8"),))
        with pytest.raises(DecodeError):
            borsh.encode(layout, {})
