"""
tests/test_cli.py

Command-line interface: output formats and exit codes.

Run:
    pytest tests/test_cli.py -v
"""

import base64
import json

import pytest
from click.testing import CliRunner

from helpers.tx_builder import address, event_line, make_tx, program_logs, tx_to_dict

from tribunalsettle.cli import cli
from tribunalsettle.codec.accounts import encode_event
from tribunalsettle.core.models import Role


OWNER   = address(80)
SUBJECT = address(81)


@pytest.fixture
def runner():
    return CliRunner()


def _round_file(tmp_path, claims=None, **round_overrides):
    round_data = {
        "round": 3, "outcome": "ChallengerWins", "total_stake": 1_000, "bond_at_risk": 0,
        "winner_pool": 800, "juror_pool": 190, "total_vote_weight": 10,
    }
    round_data.update(round_overrides)
    data = {
        "round": round_data,
        "records": [
            {"role": "Challenger", "owner": OWNER, "subject": SUBJECT, "round": 3, "stake": 250},
            {"role": "Juror", "owner": OWNER, "subject": SUBJECT, "round": 3, "voting_power": 5},
        ],
    }
    if claims is not None:
        data["claims"] = claims
    path = tmp_path / "round.json"
    path.write_text(json.dumps(data))
    return str(path)


def _claim_line(amount, role=Role.JUROR):
    return event_line("RewardClaimedEvent", {
        "subject_id": SUBJECT, "round": 3, "claimer": OWNER,
        "role": role, "amount": amount, "timestamp": 0,
    })


def _history_file(tmp_path, count=3):
    txs = [
        make_tx(f"sig{slot}", slot, program_logs([_claim_line(slot)]), accounts=[OWNER, SUBJECT])
        for slot in range(1, count + 1)
    ]
    path = tmp_path / "history.json"
    path.write_text(json.dumps({"transactions": [tx_to_dict(tx) for tx in txs]}))
    return str(path)


class TestRewardsCommand:

    def test_json_summary(self, runner, tmp_path):
        result = runner.invoke(cli, ["rewards", _round_file(tmp_path), "--format", "json"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)["tribunalsettle_rewards"]
        assert payload["summary"]["challenger"]["reward"] == 200
        assert payload["summary"]["juror"]["reward"] == 95
        assert payload["pool_invariant"] is True

    def test_human_output(self, runner, tmp_path):
        result = runner.invoke(cli, ["rewards", _round_file(tmp_path), "--no-color"])
        assert result.exit_code == 0
        assert "ChallengerWins" in result.output
        assert "295 lamports" in result.output

    def test_matching_claims_exit_zero(self, runner, tmp_path):
        path = _round_file(tmp_path, claims={"Challenger": 200, "Juror": 95})
        assert runner.invoke(cli, ["rewards", path]).exit_code == 0

    def test_claim_mismatch_exits_one(self, runner, tmp_path):
        path = _round_file(tmp_path, claims={"Challenger": 250})
        result = runner.invoke(cli, ["rewards", path, "--format", "json"])
        assert result.exit_code == 1
        checks = json.loads(result.output)["tribunalsettle_rewards"]["claim_checks"]
        assert checks[0]["delta"] == 50

    def test_broken_invariant_exits_one(self, runner, tmp_path):
        path = _round_file(tmp_path, winner_pool=900)
        assert runner.invoke(cli, ["rewards", path]).exit_code == 1

    def test_missing_file_exits_two(self, runner, tmp_path):
        result = runner.invoke(cli, ["rewards", str(tmp_path / "absent.json"), "--format", "json"])
        assert result.exit_code == 2
        assert "error" in json.loads(result.output)

    def test_malformed_file_exits_two(self, runner, tmp_path):
        path = tmp_path / "round.json"
        path.write_text(json.dumps({"records": []}))
        assert runner.invoke(cli, ["rewards", str(path)]).exit_code == 2


class TestMinBondCommand:

    @pytest.mark.parametrize("reputation,expected", [
        ("50%", 10_000_000),
        ("0%", 100_000_000),
        ("100000000", 7_071_000),
    ])
    def test_minimum_bond(self, runner, reputation, expected):
        result = runner.invoke(cli, ["min-bond", "--reputation", reputation, "--format", "json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["tribunalsettle_min_bond"]["minimum_bond"] == expected

    def test_out_of_range_exits_two(self, runner):
        result = runner.invoke(cli, ["min-bond", "--reputation", "150%"])
        assert result.exit_code == 2


class TestActivityCommand:

    def test_json_listing(self, runner, tmp_path):
        result = runner.invoke(cli, [
            "activity", OWNER, "--history", _history_file(tmp_path), "--format", "json",
        ])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)["tribunalsettle_activity"]
        assert [e["signature"] for e in payload["entries"]] == ["sig3", "sig2", "sig1"]
        assert payload["exhausted"] is True
        assert payload["entries"][0]["confidence"] == "decoded"

    def test_limit_and_claim_summary(self, runner, tmp_path):
        result = runner.invoke(cli, [
            "activity", OWNER, "--history", _history_file(tmp_path),
            "--limit", "2", "--claims-for", f"{SUBJECT}:3", "--format", "json",
        ])
        payload = json.loads(result.output)["tribunalsettle_activity"]
        assert payload["next_cursor"] == "sig2"
        assert payload["claim_summary"]["juror"] == 3

    def test_human_listing(self, runner, tmp_path):
        result = runner.invoke(cli, ["activity", OWNER, "--history", _history_file(tmp_path), "--no-color"])
        assert result.exit_code == 0
        assert "sig3" in result.output
        assert "exhausted" in result.output

    def test_schema_override_from_config(self, runner, tmp_path):
        config = tmp_path / "settle.yaml"
        config.write_text("schema_version: dispute\n")
        result = runner.invoke(cli, [
            "activity", OWNER, "--history", _history_file(tmp_path),
            "--config", str(config), "--schema", "round", "--format", "json",
        ])
        payload = json.loads(result.output)["tribunalsettle_activity"]
        assert payload["schema_version"] == "round"
        assert len(payload["entries"]) == 3

    def test_missing_history_exits_two(self, runner, tmp_path):
        result = runner.invoke(cli, ["activity", OWNER, "--history", str(tmp_path / "absent.json")])
        assert result.exit_code == 2

    def test_bad_claims_for_exits_two(self, runner, tmp_path):
        result = runner.invoke(cli, [
            "activity", OWNER, "--history", _history_file(tmp_path), "--claims-for", "nonsense",
        ])
        assert result.exit_code == 2


class TestDecodeCommand:

    def _payload(self):
        return encode_event("RewardClaimedEvent", {
            "subject_id": SUBJECT, "round": 3, "claimer": OWNER,
            "role": Role.DEFENDER, "amount": 77, "timestamp": 0,
        })

    def test_base64_event(self, runner):
        encoded = base64.b64encode(self._payload()).decode("ascii")
        result = runner.invoke(cli, ["decode", encoded, "--format", "json"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)["tribunalsettle_decode"]
        assert payload["name"] == "RewardClaimedEvent"
        assert payload["fields"]["role"] == "Defender"
        assert payload["fields"]["amount"] == 77

    def test_hex_event(self, runner):
        result = runner.invoke(cli, ["decode", self._payload().hex()])
        assert result.exit_code == 0
        assert "RewardClaimedEvent" in result.output

    def test_unknown_discriminator_exits_one(self, runner):
        result = runner.invoke(cli, ["decode", "00" * 16, "--format", "json"])
        assert result.exit_code == 1
        assert json.loads(result.output)["tribunalsettle_decode"]["decoded"] is False

    def test_garbage_exits_two(self, runner):
        assert runner.invoke(cli, ["decode", "not hex, not base64!"]).exit_code == 2
