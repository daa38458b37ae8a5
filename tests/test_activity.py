"""
tests/test_activity.py

Activity reconciliation: log attribution, event precedence, heuristic
fallback, paging, and claim verification.

Run:
    pytest tests/test_activity.py -v
"""

import json

import pytest

from helpers.tx_builder import (
    SYSTEM_PROGRAM,
    address,
    event_line,
    make_tx,
    program_logs,
    tx_to_dict,
)

from tribunalsettle.activity.inference import assign_roles, identify_instruction, infer_from_messages
from tribunalsettle.activity.logs import scan_logs
from tribunalsettle.activity.provider import JsonHistoryProvider
from tribunalsettle.activity.reconcile import ActivityReconciler, claim_summary, verify_claims
from tribunalsettle.core.config import EngineConfig
from tribunalsettle.core.constants import DISPUTE_PROGRAM_ID, ROUND_PROGRAM_ID
from tribunalsettle.core.exceptions import HistoryFetchError
from tribunalsettle.core.models import (
    ActivityType,
    ChallengerRecord,
    Confidence,
    JurorRecord,
    ResolutionOutcome,
    Role,
    RoundResult,
    SchemaVersion,
    VoteChoice,
)


OWNER   = address(50)
SUBJECT = address(51)
OTHER   = address(52)


def _claim_event(amount, role=Role.JUROR, round=1, claimer=OWNER, subject=SUBJECT):
    return event_line("RewardClaimedEvent", {
        "subject_id": subject, "round": round, "claimer": claimer,
        "role": role, "amount": amount, "timestamp": 1_718_000_000,
    })


def _unlock_event(amount):
    return event_line("StakeUnlockedEvent", {
        "subject_id": SUBJECT, "round": 1, "juror": OWNER,
        "amount": amount, "timestamp": 1_718_000_000,
    })


def _vote_event():
    return event_line("VoteEvent", {
        "subject_id": SUBJECT, "round": 1, "juror": OWNER,
        "choice": VoteChoice.FOR_CHALLENGER, "voting_power": 10,
        "rationale_cid": "", "timestamp": 1_718_000_000,
    })


def _claim_tx(signature, slot, amount=95, role=Role.JUROR, **kwargs):
    return make_tx(
        signature, slot,
        program_logs(["Program log: Instruction: ClaimJuror", _claim_event(amount, role)]),
        accounts=[OWNER, SUBJECT],
        **kwargs,
    )


def _history(count):
    return [_claim_tx(f"sig{slot}", slot, amount=slot) for slot in range(1, count + 1)]


class _FailingProvider(JsonHistoryProvider):
    """Serves the first `ok_pages` signature pages, then fails."""

    def __init__(self, transactions, ok_pages=1):
        super().__init__(transactions)
        self.calls    = 0
        self.ok_pages = ok_pages

    def get_signatures(self, address, before=None, limit=100):
        self.calls += 1
        if self.calls > self.ok_pages:
            raise HistoryFetchError("RPC unavailable", {"before": before})
        return super().get_signatures(address, before=before, limit=limit)


def _reconciler(transactions, **config):
    return ActivityReconciler(JsonHistoryProvider(transactions), EngineConfig(**config))


# ─────────────────────────────────────────────────────────────
# Log scanning
# ─────────────────────────────────────────────────────────────

class TestLogScan:

    def test_attributes_lines_to_program_on_top_of_stack(self):
        logs = [
            f"Program {ROUND_PROGRAM_ID} invoke [1]",
            "Program log: Instruction: ClaimJuror",
            f"Program {SYSTEM_PROGRAM} invoke [2]",
            _vote_event(),
            "Program log: Transfer",
            f"Program {SYSTEM_PROGRAM} success",
            _claim_event(95),
            f"Program {ROUND_PROGRAM_ID} success",
        ]
        scan = scan_logs(logs, ROUND_PROGRAM_ID)
        assert scan.invoked
        assert len(scan.payloads) == 1
        assert scan.instruction_names == ["ClaimJuror"]
        assert scan.messages == []

    def test_malformed_payload_is_counted_and_skipped(self):
        scan = scan_logs(program_logs(["Program data: !!!not-base64!!!", _claim_event(5)]), ROUND_PROGRAM_ID)
        assert scan.malformed == 1
        assert len(scan.payloads) == 1

    def test_failure_and_truncation(self):
        logs = program_logs(["Log truncated"], failure="custom program error: 0x1771")
        scan = scan_logs(logs, ROUND_PROGRAM_ID)
        assert scan.failed
        assert scan.failure == "custom program error: 0x1771"
        assert scan.truncated

    def test_other_program_only(self):
        scan = scan_logs(program_logs([_claim_event(1)], program_id=SYSTEM_PROGRAM), ROUND_PROGRAM_ID)
        assert not scan.invoked
        assert scan.payloads == []


# ─────────────────────────────────────────────────────────────
# Single-transaction reconciliation
# ─────────────────────────────────────────────────────────────

class TestReconcileTransaction:

    def test_decoded_claim(self):
        tx = _claim_tx("a", 10, amount=1_500, pre=[1_000, 0], post=[2_500, 0])
        entry = _reconciler([tx]).reconcile_transaction(tx, OWNER)
        assert entry.activity_type is ActivityType.CLAIM
        assert entry.confidence is Confidence.DECODED
        assert entry.source == "RewardClaimedEvent"
        assert (entry.actor, entry.amount, entry.role) == (OWNER, 1_500, Role.JUROR)
        assert (entry.subject, entry.round) == (SUBJECT, 1)
        assert entry.balance_delta == 1_500
        assert entry.data["role"] == "Juror"

    def test_settlement_event_outranks_bookkeeping(self):
        tx = make_tx("b", 11, program_logs([_unlock_event(7), _claim_event(95)]), accounts=[OWNER])
        entry = _reconciler([tx]).reconcile_transaction(tx)
        assert entry.source == "RewardClaimedEvent"
        assert entry.events == ["StakeUnlockedEvent", "RewardClaimedEvent"]

    def test_resolution_outranks_claim(self):
        resolved = event_line("DisputeResolvedEvent", {
            "subject_id": SUBJECT, "round": 1, "outcome": ResolutionOutcome.DEFENDER_WINS,
            "total_stake": 1_000, "bond_at_risk": 500, "winner_pool": 1_200, "juror_pool": 285,
            "resolved_at": 5, "timestamp": 5,
        })
        tx = make_tx("c", 12, program_logs([_claim_event(1), resolved]), accounts=[OWNER])
        entry = _reconciler([tx]).reconcile_transaction(tx)
        assert entry.activity_type is ActivityType.RESOLVE
        assert entry.outcome is ResolutionOutcome.DEFENDER_WINS

    def test_unknown_payload_skipped_without_aborting(self):
        junk = "Program data: " + "3q2+7wAAAAAAAAAAAAAAAA=="
        tx = make_tx("d", 13, program_logs([junk, _claim_event(42)]), accounts=[OWNER])
        entry = _reconciler([tx]).reconcile_transaction(tx)
        assert entry.confidence is Confidence.DECODED
        assert entry.amount == 42

    def test_untouched_transaction_is_none(self):
        tx = make_tx("e", 14, program_logs(["Program log: Transfer"], program_id=SYSTEM_PROGRAM), accounts=[OWNER])
        assert _reconciler([tx]).reconcile_transaction(tx) is None

    def test_failed_transaction_is_flagged(self):
        tx = make_tx(
            "f", 15, program_logs([], failure="custom program error: 0x1771"),
            accounts=[OWNER], error="InstructionError",
        )
        entry = _reconciler([tx]).reconcile_transaction(tx)
        assert entry.success is False

    def test_instruction_data_fallback(self):
        record, dispute, pool = address(60), address(61), address(62)
        accounts = [OWNER, pool, SUBJECT, dispute, record, SYSTEM_PROGRAM]
        tx = make_tx("g", 16, program_logs(["Log truncated"]), accounts=accounts, instruction="vote_on_dispute")
        entry = _reconciler([tx]).reconcile_transaction(tx)
        assert entry.activity_type is ActivityType.VOTE
        assert entry.confidence is Confidence.INFERRED
        assert entry.source == "vote_on_dispute"
        assert (entry.subject, entry.dispute, entry.record, entry.actor) == (SUBJECT, dispute, record, OWNER)

    def test_dispute_generation_diagnostic_claim(self):
        dispute, vote_record = address(63), address(64)
        logs = program_logs(
            ["Program log: Instruction: ClaimJurorReward", "Program log: Juror claimed 1500 lamports"],
            program_id=DISPUTE_PROGRAM_ID,
        )
        accounts = [OWNER, SUBJECT, address(65), dispute, vote_record, SYSTEM_PROGRAM]
        tx = make_tx("h", 17, logs, accounts=accounts)
        entry = _reconciler([tx], schema_version=SchemaVersion.DISPUTE).reconcile_transaction(tx)
        assert entry.activity_type is ActivityType.CLAIM
        assert entry.confidence is Confidence.INFERRED
        assert (entry.role, entry.amount) == (Role.JUROR, 1_500)
        assert entry.dispute == dispute
        assert entry.record == vote_record

    def test_unclassifiable_is_ambiguous_not_dropped(self):
        tx = make_tx("i", 18, program_logs(["Program log: something new"]), accounts=[OWNER, SUBJECT])
        entry = _reconciler([tx]).reconcile_transaction(tx)
        assert entry.activity_type is ActivityType.UNKNOWN
        assert entry.confidence is Confidence.AMBIGUOUS
        assert entry.data["accounts"]["signer"] == OWNER


class TestInference:

    def test_resolution_diagnostic(self):
        inference = infer_from_messages(["Dispute resolved: Upheld, winner_pool=800, juror_pool=190"])
        assert inference.activity_type is ActivityType.RESOLVE
        assert inference.outcome is ResolutionOutcome.CHALLENGER_WINS
        assert inference.detail == {"winner_pool": 800, "juror_pool": 190}

    def test_priority_order(self):
        inference = infer_from_messages([
            "Vote cast: ForChallenger with 10 voting power",
            "Challenger claimed 200 lamports",
        ])
        assert inference.activity_type is ActivityType.CLAIM

    def test_no_match(self):
        assert infer_from_messages(["hello"]) is None

    def test_identify_by_logged_name(self):
        spec = identify_instruction(SchemaVersion.ROUND, b"", ["SweepRoundTreasury"])
        assert spec.activity_type is ActivityType.SWEEP

    def test_generic_roles_collect_remaining(self):
        roles = assign_roles(["a", "b", "c", "d", "e", "f", "g"])
        assert roles["signer"] == "a"
        assert roles["subject"] == "e"
        assert roles["remaining"] == ["f", "g"]


# ─────────────────────────────────────────────────────────────
# Paging
# ─────────────────────────────────────────────────────────────

class TestFetchActivity:

    def test_limit_and_resume(self):
        reconciler = _reconciler(_history(7), page_size=3)
        first = reconciler.fetch_activity(OWNER, limit=5)
        assert [e.signature for e in first.entries] == ["sig7", "sig6", "sig5", "sig4", "sig3"]
        assert first.next_cursor == "sig3"
        assert not first.exhausted

        second = reconciler.fetch_activity(OWNER, limit=5, before=first.next_cursor)
        assert [e.signature for e in second.entries] == ["sig2", "sig1"]
        assert second.exhausted
        assert second.next_cursor is None

    def test_exactly_full_page_keeps_cursor(self):
        page = _reconciler(_history(7), page_size=3).fetch_activity(OWNER, limit=6)
        assert len(page.entries) == 6
        assert page.next_cursor == "sig2"

    def test_newest_first_by_slot_then_position(self):
        txs = [
            _claim_tx("low", 5, position=0),
            _claim_tx("high", 5, position=2),
            _claim_tx("newer", 6),
        ]
        page = _reconciler(txs).fetch_activity(OWNER, limit=10)
        assert [e.signature for e in page.entries] == ["newer", "high", "low"]

    def test_non_program_transactions_are_skipped(self):
        transfer = make_tx("t", 8, program_logs([], program_id=SYSTEM_PROGRAM), accounts=[OWNER, OTHER])
        page = _reconciler(_history(2) + [transfer]).fetch_activity(OWNER, limit=10)
        assert [e.signature for e in page.entries] == ["sig2", "sig1"]

    def test_duplicate_signatures_collapse(self):
        tx = _claim_tx("dup", 3)
        page = _reconciler([tx, tx]).fetch_activity(OWNER, limit=10)
        assert len(page.entries) == 1

    def test_failed_page_reported_and_resumable(self):
        provider   = _FailingProvider(_history(7), ok_pages=1)
        reconciler = ActivityReconciler(provider, EngineConfig(page_size=3))
        page = reconciler.fetch_activity(OWNER, limit=10)
        assert [e.signature for e in page.entries] == ["sig7", "sig6", "sig5"]
        assert not page.complete
        assert page.failed_pages[0].before == "sig5"
        assert page.next_cursor == "sig5"
        assert not page.exhausted

    def test_unknown_cursor_is_a_failed_page(self):
        page = _reconciler(_history(2)).fetch_activity(OWNER, before="missing")
        assert page.entries == []
        assert len(page.failed_pages) == 1

    def test_sequential_and_parallel_agree(self):
        txs = _history(9)
        parallel   = _reconciler(txs, page_size=4, parallel=True).fetch_activity(OWNER, limit=9)
        sequential = _reconciler(txs, page_size=4, parallel=False).fetch_activity(OWNER, limit=9)
        assert [e.to_dict() for e in parallel.entries] == [e.to_dict() for e in sequential.entries]

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            _reconciler([]).fetch_activity(OWNER, limit=0)

    def test_iter_activity_raises_after_partial_history(self):
        provider   = _FailingProvider(_history(7), ok_pages=1)
        reconciler = ActivityReconciler(provider, EngineConfig(page_size=3))
        seen = []
        with pytest.raises(HistoryFetchError):
            for entry in reconciler.iter_activity(OWNER):
                seen.append(entry.signature)
        assert seen == ["sig7", "sig6", "sig5"]

    def test_iter_activity_streams_everything(self):
        reconciler = _reconciler(_history(7), page_size=3)
        assert len(list(reconciler.iter_activity(OWNER))) == 7


class TestJsonProvider:

    def test_load_export(self, tmp_path):
        accounts = [OWNER, address(70), SUBJECT, address(71), address(72), SYSTEM_PROGRAM]
        tx = make_tx("exported", 20, program_logs([]), accounts=accounts, instruction="add_to_vote")
        path = tmp_path / "history.json"
        path.write_text(json.dumps({"transactions": [tx_to_dict(tx)]}))

        provider = JsonHistoryProvider.load(path)
        loaded   = provider.get_transaction("exported")
        assert loaded.instructions[0].data == tx.instructions[0].data

        page = ActivityReconciler(provider).fetch_activity(OWNER)
        assert page.entries[0].source == "add_to_vote"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            JsonHistoryProvider.load(tmp_path / "absent.json")


# ─────────────────────────────────────────────────────────────
# Claims
# ─────────────────────────────────────────────────────────────

class TestClaims:

    ROUND = RoundResult(
        round=1, outcome=ResolutionOutcome.CHALLENGER_WINS,
        total_stake=1_000, bond_at_risk=0, winner_pool=800, juror_pool=190, total_vote_weight=10,
    )
    RECORDS = [
        JurorRecord(owner=OWNER, subject=SUBJECT, round=1, voting_power=5),
        ChallengerRecord(owner=OWNER, subject=SUBJECT, round=1, stake=250),
    ]

    def _entries(self, juror_amount=95):
        txs = [
            _claim_tx("j", 30, amount=juror_amount, role=Role.JUROR),
            _claim_tx("c", 31, amount=200, role=Role.CHALLENGER),
            make_tx("v", 29, program_logs([_vote_event()]), accounts=[OWNER, SUBJECT]),
        ]
        return _reconciler(txs).fetch_activity(OWNER).entries

    def test_summary_groups_by_role(self):
        summary = claim_summary(self._entries(), SUBJECT, 1)
        assert summary.juror.amount == 95
        assert summary.challenger.amount == 200
        assert summary.defender is None
        assert summary.total == 295

    def test_other_round_ignored(self):
        assert claim_summary(self._entries(), SUBJECT, 2).total == 0

    def test_verify_matching_claims(self):
        checks = verify_claims(claim_summary(self._entries(), SUBJECT, 1), self.ROUND, self.RECORDS)
        assert len(checks) == 2
        assert all(checks)

    def test_verify_detects_overpayment(self):
        checks = verify_claims(claim_summary(self._entries(juror_amount=96), SUBJECT, 1), self.ROUND, self.RECORDS)
        mismatched = [c for c in checks if not c]
        assert [(c.role, c.delta) for c in mismatched] == [(Role.JUROR, 1)]

    def test_losing_juror_claim_pays_nothing(self):
        lost = RoundResult(
            round=1, outcome=ResolutionOutcome.DEFENDER_WINS,
            total_stake=2_000, bond_at_risk=2_000, winner_pool=3_600, juror_pool=380, total_vote_weight=100,
        )
        juror = JurorRecord(owner=OWNER, subject=SUBJECT, round=1, voting_power=40, choice=VoteChoice.FOR_CHALLENGER)
        summary = claim_summary(self._entries(juror_amount=0), SUBJECT, 1)
        (check,) = verify_claims(summary, lost, [juror])
        assert check.matches
        assert check.expected == 0

        overpaid = claim_summary(self._entries(juror_amount=152), SUBJECT, 1)
        (bad,) = verify_claims(overpaid, lost, [juror])
        assert not bad
        assert bad.delta == 152

    def test_no_participation_juror_expects_nothing(self):
        empty = RoundResult(
            round=1, outcome=ResolutionOutcome.NO_PARTICIPATION,
            total_stake=1_000, bond_at_risk=500, juror_pool=0, total_vote_weight=0,
        )
        summary = claim_summary(self._entries(juror_amount=0), SUBJECT, 1)
        (check,) = verify_claims(summary, empty, self.RECORDS[:1])
        assert check.matches
        assert check.expected == 0

    def test_claim_history_only_successful_claims(self):
        txs = [
            _claim_tx("ok", 40),
            _claim_tx("failed", 41, error="InstructionError"),
            make_tx("vote", 42, program_logs([_vote_event()]), accounts=[OWNER]),
        ]
        claims = _reconciler(txs).claim_history(OWNER)
        assert [c.signature for c in claims] == ["ok"]
