"""Fixture serialization and conversion tooling."""

from __future__ import annotations

import json
from pathlib import Path

import yaml

from htlc_spec.hashlock import commit
from htlc_spec.state_digest import compute_state_digest
from htlc_spec.state_transition import apply_action
from htlc_spec.test_accounts import ALICE, BOB, ISSUER, TOKEN
from htlc_spec.types import Action, ActionType, SwapState, TokenInfo
from tools import consume, fill, fixtures_to_vectors
from tools.fixtures_io import action_from_json, action_to_json, state_from_json, state_to_json
from tools.yaml_dump import dump_yaml, load_yaml


def _state() -> SwapState:
    state = SwapState(timestamp=1500)
    state.tokens[TOKEN] = TokenInfo(admin=ISSUER, name="Test Token", symbol="TST", decimals=7, total_supply=10_000)
    state.balances[TOKEN] = {ALICE: 10_000}
    return state


def _create() -> Action:
    return Action(
        sender=ALICE,
        action_type=ActionType.CREATE_ESCROW,
        payload={
            "maker": ALICE,
            "taker": BOB,
            "asset": TOKEN,
            "amount": 1000,
            "hashlock": commit(b"secret123"),
            "timelock_start": 1000,
            "timelock_end": 2000,
        },
    )


def _case(name: str = "create") -> dict:
    pre = _state()
    post, result = apply_action(pre, _create())
    return {
        "name": name,
        "pre_state": state_to_json(pre),
        "action": action_to_json(_create()),
        "expected": {
            "ok": result.ok,
            "error": None,
            "post_state": state_to_json(post),
            "events": consume.events_to_json(result.events),
        },
    }


def test_state_json_preserves_escrows() -> None:
    post, result = apply_action(_state(), _create())
    data = json.loads(json.dumps(state_to_json(post)))
    restored = state_from_json(data)
    assert restored.escrows == post.escrows
    assert restored.balances == post.balances
    assert restored.sequence == 1


def test_action_json_decodes_byte_fields() -> None:
    action = action_from_json(json.loads(json.dumps(action_to_json(_create()))))
    assert action.payload["hashlock"] == commit(b"secret123")
    assert action.payload["maker"] == ALICE
    assert action.payload["amount"] == 1000
    assert action.action_type is ActionType.CREATE_ESCROW


def test_state_digest_ignores_order_and_zero_balances() -> None:
    post, _ = apply_action(_state(), _create())
    data = state_to_json(post)
    shuffled = dict(data, balances=list(reversed(data["balances"])))
    assert compute_state_digest(data) == compute_state_digest(shuffled)

    padded = dict(data, balances=data["balances"] + [{"asset": TOKEN.hex(), "holder": BOB.hex(), "balance": 0}])
    assert compute_state_digest(data) == compute_state_digest(padded)


def test_state_digest_tracks_status() -> None:
    post, _ = apply_action(_state(), _create())
    data = state_to_json(post)
    changed = json.loads(json.dumps(data))
    changed["escrows"][0]["status"] = "withdrawn"
    assert compute_state_digest(data) != compute_state_digest(changed)


def test_consume_accepts_recorded_case() -> None:
    assert consume.check_state_cases({"cases": [_case()]}) == []


def test_consume_flags_tampered_case() -> None:
    case = _case("tampered")
    case["expected"]["post_state"]["balances"][0]["balance"] += 1
    assert consume.check_state_cases({"cases": [case]}) == ["tampered: state_mismatch"]

    case = _case("flipped")
    case["expected"]["ok"] = False
    assert consume.check_state_cases({"cases": [case]}) == ["flipped: ok_mismatch"]


def test_fixtures_to_vectors(tmp_path) -> None:
    fixtures = tmp_path / "fixtures"
    (fixtures / "escrow").mkdir(parents=True)
    (fixtures / "escrow" / "create.json").write_text(json.dumps({"cases": [_case()]}))
    (fixtures / "hashlock").mkdir()
    (fixtures / "hashlock" / "commit.json").write_text(json.dumps({"test_vectors": [{"name": "v"}]}))

    vectors = tmp_path / "vectors"
    assert fixtures_to_vectors.convert(fixtures, vectors) == 2

    data = load_yaml(vectors / "execution" / "escrow" / "create.yaml")
    vector = data["test_vectors"][0]
    assert vector["input"]["kind"] == "action"
    assert vector["expected"]["success"] is True
    assert vector["expected"]["error_code"] == 0
    assert len(vector["expected"]["state_digest"]) == 64
    assert load_yaml(vectors / "crypto" / "hashlock" / "commit.yaml") == {"test_vectors": [{"name": "v"}]}


def test_map_dest_unknown_prefix() -> None:
    assert fixtures_to_vectors.map_dest(Path("other/x.json")) == Path("unmapped/other/x.json")
    assert fixtures_to_vectors.map_dest(Path("token/mint.json")) == Path("execution/token/mint.json")


def test_dump_yaml_keeps_key_order() -> None:
    text = dump_yaml({"b": 1, "a": "x"})
    assert text.index("b:") < text.index("a:")
    assert yaml.safe_load(text) == {"b": 1, "a": "x"}


def test_fill_forwards_pytest_arguments() -> None:
    cmd = fill.build_command(["-k", "escrow"])
    assert cmd[1:3] == ["-m", "pytest"]
    assert cmd[cmd.index("--output") + 1].endswith("fixtures")
    assert cmd[-2:] == ["-k", "escrow"]


def test_consume_fixture_dir_prefixes_file(tmp_path) -> None:
    case = _case("drift")
    case["expected"]["events"] = []
    (tmp_path / "escrow").mkdir()
    (tmp_path / "escrow" / "create.json").write_text(json.dumps({"cases": [case, _case()]}))
    (tmp_path / "accounts.json").write_text(json.dumps({"test_vectors": []}))
    assert consume.check_fixture_dir(tmp_path) == ["escrow/create.json: drift: events_mismatch"]
