"""Conformance harness against the in-process reference client."""

from __future__ import annotations

import asyncio
import json

import yaml

from conformance.harness.comparator import EXPECTED, ResultComparator
from conformance.harness.config import LOCAL_ENDPOINT, REFERENCE_CLIENT, ClientConfig, HarnessConfig
from conformance.harness.runner import ConformanceHarness, find_vector_files
from htlc_spec.errors import ErrorCode
from htlc_spec.hashlock import encode_secret
from htlc_spec.state_digest import compute_state_digest
from htlc_spec.state_transition import apply_tx
from htlc_spec.test_accounts import TAKER
from htlc_spec.types import TransactionType
from tools.fixtures_io import state_to_json, tx_to_json

from helpers import SECRET, at, create_escrow, escrow_tx, evm_with_factory, make_immutables


def _vector(name: str, secret: int) -> dict:
    state, factory, _ = evm_with_factory()
    state, escrow, imm = create_escrow(state, factory, make_immutables())
    state = at(state, 60)
    tx = escrow_tx(TAKER, TransactionType.DST_WITHDRAW, escrow, imm, secret=secret)
    post, result = apply_tx(state, tx)
    return {
        "name": name,
        "pre_state": state_to_json(state),
        "transaction": tx_to_json(tx),
        "expected": {
            "success": result.ok,
            "error_code": int(result.error.code) if result.error else 0,
            "state_digest": compute_state_digest(state_to_json(post)),
        },
    }


def _config(tmp_path) -> HarnessConfig:
    config = HarnessConfig(result_dir=str(tmp_path / "results"))
    config.clients = {REFERENCE_CLIENT: ClientConfig(name="Python model", endpoint=LOCAL_ENDPOINT)}
    return config


def _run(harness: ConformanceHarness, coro):
    async def _go():
        await harness.setup()
        try:
            return await coro()
        finally:
            await harness.teardown()

    return asyncio.run(_go())


def test_reference_client_reproduces_vectors(tmp_path) -> None:
    harness = ConformanceHarness(_config(tmp_path))
    ok = _vector("withdraw_ok", SECRET)
    bad = _vector("withdraw_bad_secret", SECRET + 1)
    assert bad["expected"]["error_code"] == int(ErrorCode.INVALID_SECRET)

    async def both():
        return [await harness.run_vector(ok), await harness.run_vector(bad)]

    results = _run(harness, both)
    assert all(r.passed for r in results), [r.comparison for r in results]
    assert {r.chain_kind for r in results} == {"evm"}


def test_tampered_expectation_is_reported(tmp_path) -> None:
    harness = ConformanceHarness(_config(tmp_path))
    vector = _vector("withdraw_ok", SECRET)
    vector["expected"]["state_digest"] = "00" * 32

    result = _run(harness, lambda: harness.run_vector(vector))
    assert not result.passed
    (div,) = result.comparison.divergences
    assert div.field == "state_digest"
    assert div.reference_client == EXPECTED


def test_suite_run_and_report(tmp_path) -> None:
    suite = tmp_path / "vectors" / "execution" / "withdraw.yaml"
    suite.parent.mkdir(parents=True)
    suite.write_text(yaml.safe_dump({"test_vectors": [_vector("withdraw_ok", SECRET)]}))

    files = find_vector_files(str(tmp_path / "vectors"))
    assert files == [str(suite)]

    harness = ConformanceHarness(_config(tmp_path))
    report = _run(harness, lambda: harness.run_all(files))
    assert report.total_tests == 1
    assert report.total_failed == 0
    assert report.by_chain == {"evm": [1, 1]}

    path = harness.reporter.write_json_report(report)
    data = json.loads(open(path).read())
    assert data["total_passed"] == 1
    assert data["by_chain"]["evm"] == {"passed": 1, "total": 1}

    summary = open(harness.reporter.write_summary(report)).read()
    assert "withdraw: 1/1" in summary


def test_comparator_flags_client_divergence() -> None:
    comparator = ResultComparator()
    results = {
        REFERENCE_CLIENT: {"success": True, "error_code": 0, "state_digest": "aa", "revealed_secrets": ["01"]},
        "evm-node": {"success": True, "error_code": 0, "state_digest": "aa", "revealed_secrets": []},
    }
    comparison = comparator.compare_results(results, "v")
    assert [d.field for d in comparison.divergences] == ["revealed_secrets"]

    results["evm-node"] = dict(results[REFERENCE_CLIENT])
    assert not comparator.compare_results(results, "v").has_divergences


def test_comparator_error_code_mismatch() -> None:
    comparator = ResultComparator()
    results = {
        REFERENCE_CLIENT: {"success": False, "error_code": int(ErrorCode.INVALID_TIME)},
        "ton-node": {"success": False, "error_code": int(ErrorCode.INVALID_SECRET)},
    }
    (div,) = comparator.compare_results(results, "v").divergences
    assert div.field == "error_code"
    assert "0x0410" in div.details


def test_config_from_env(monkeypatch) -> None:
    monkeypatch.delenv("EVM_ENDPOINT", raising=False)
    monkeypatch.setenv("TON_ENDPOINT", "http://localhost:8081")
    monkeypatch.setenv("STOP_ON_FIRST_FAILURE", "yes")
    config = HarnessConfig.from_env()

    enabled = config.get_enabled_clients()
    assert set(enabled) == {REFERENCE_CLIENT, "ton-node"}
    assert enabled[REFERENCE_CLIENT].is_local
    assert enabled["ton-node"].supports("ton")
    assert not enabled["ton-node"].supports("evm")
    assert config.stop_on_first_failure

    config.set_endpoint("evm-node", "http://localhost:8545")
    assert "evm-node" in config.get_enabled_clients()


def test_report_names_outcomes_and_secrets(tmp_path) -> None:
    ok = _vector("withdraw_ok", SECRET)
    bad = _vector("withdraw_bad_secret", SECRET + 1)
    wrong = _vector("withdraw_expect_time", SECRET + 1)
    wrong["expected"]["error_code"] = int(ErrorCode.INVALID_TIME)
    suite = tmp_path / "vectors" / "withdraw.yaml"
    suite.parent.mkdir(parents=True)
    suite.write_text(yaml.safe_dump({"test_vectors": [ok, bad, wrong]}))

    harness = ConformanceHarness(_config(tmp_path))
    report = _run(harness, lambda: harness.run_all([str(suite)]))
    assert report.by_outcome == {"INVALID_SECRET": 2, "OK": 1}
    assert report.secrets == [encode_secret(SECRET).hex()]

    data = json.loads(open(harness.reporter.write_json_report(report)).read())
    (div,) = data["divergences"]
    assert (div["expected"], div["actual"]) == ("INVALID_TIME", "INVALID_SECRET")
    assert data["failures"][0]["outcome"] == "INVALID_SECRET"

    summary = "\n".join(harness.reporter.summary_lines(report))
    assert "INVALID_SECRET: 2" in summary
    assert "Secrets revealed: 1" in summary
