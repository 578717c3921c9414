#!/usr/bin/env python3
"""
HTLC Conformance Test Runner

Replays YAML vector suites against the in-process Python model and any
external EVM / TON implementations, comparing result codes, state digests
and revealed secrets.

Run from the repository root: python -m conformance.harness.runner
"""

import asyncio
import glob
import logging
import os
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import aiohttp
import click
import yaml

from htlc_spec.query import revealed_secrets
from htlc_spec.state_digest import compute_state_digest
from htlc_spec.state_transition import apply_tx
from htlc_spec.types import ChainState
from tools.fixtures_io import state_from_json, state_to_json, tx_from_json

from .comparator import ComparisonResult, ResultComparator
from .config import REFERENCE_CLIENT, ClientConfig, HarnessConfig
from .reporter import ConformanceReport, ReportGenerator, SuiteResult, TestResult

logger = logging.getLogger(__name__)


class ConformanceClient:
    """HTTP client for a single implementation."""

    def __init__(self, config: ClientConfig):
        self.config = config
        self.session: Optional[aiohttp.ClientSession] = None

    async def connect(self) -> None:
        """Initialize HTTP session."""
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        self.session = aiohttp.ClientSession(timeout=timeout)

    async def close(self) -> None:
        """Close HTTP session."""
        if self.session:
            await self.session.close()

    async def reset_state(self) -> bool:
        """Reset client to genesis state."""
        try:
            async with self.session.post(
                f"{self.config.endpoint}/state/reset"
            ) as resp:
                data = await resp.json()
                return data.get("success", False)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[{self.config.name}] Reset failed: {e}")
            return False

    async def load_state(self, state: Dict[str, Any]) -> Optional[str]:
        """
        Load state from JSON.

        Returns state digest on success, None on failure.
        """
        try:
            async with self.session.post(
                f"{self.config.endpoint}/state/load",
                json=state,
            ) as resp:
                data = await resp.json()
                if data.get("success"):
                    return data.get("state_digest")
                return None
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[{self.config.name}] Load state failed: {e}")
            return None

    async def get_state_digest(self) -> Optional[str]:
        """Get current state digest."""
        try:
            async with self.session.get(
                f"{self.config.endpoint}/state/digest"
            ) as resp:
                data = await resp.json()
                return data.get("state_digest")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[{self.config.name}] Get digest failed: {e}")
            return None

    async def execute_tx(self, tx: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a single transaction given in fixture JSON form."""
        try:
            async with self.session.post(
                f"{self.config.endpoint}/tx/execute",
                json={"tx": tx},
            ) as resp:
                return await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[{self.config.name}] Execute TX failed: {e}")
            return {"success": False, "error": str(e)}


class LocalClient:
    """In-process client backed by the Python model.

    Speaks the same protocol as `ConformanceClient` without a network hop.
    """

    def __init__(self, config: ClientConfig):
        self.config = config
        self.state = ChainState()

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def reset_state(self) -> bool:
        self.state = ChainState()
        return True

    async def load_state(self, state: Dict[str, Any]) -> Optional[str]:
        self.state = state_from_json(state)
        return await self.get_state_digest()

    async def get_state_digest(self) -> Optional[str]:
        return compute_state_digest(state_to_json(self.state))

    async def execute_tx(self, tx: Dict[str, Any]) -> Dict[str, Any]:
        self.state, result = apply_tx(self.state, tx_from_json(tx))
        return {
            "success": result.ok,
            "error_code": int(result.error.code) if result.error else 0,
            "state_digest": await self.get_state_digest(),
            "revealed_secrets": sorted(s.hex() for s in revealed_secrets(self.state).values()),
        }


Client = Union[ConformanceClient, LocalClient]


def make_client(config: ClientConfig) -> Client:
    if config.is_local:
        return LocalClient(config)
    return ConformanceClient(config)


def _merge(*results: ComparisonResult) -> ComparisonResult:
    divergences = [d for r in results for d in r.divergences]
    clients: List[str] = []
    for r in results:
        clients.extend(c for c in r.clients_compared if c not in clients)
    return ComparisonResult(
        success=not divergences,
        divergences=divergences,
        clients_compared=clients,
    )


class ConformanceHarness:
    """Main test harness for conformance testing."""

    def __init__(self, config: HarnessConfig):
        self.config = config
        self.clients: Dict[str, Client] = {}
        self.comparator = ResultComparator(reference_client=REFERENCE_CLIENT)
        self.reporter = ReportGenerator(config.result_dir)

    async def setup(self) -> None:
        """Initialize all clients."""
        for name, client_config in self.config.get_enabled_clients().items():
            client = make_client(client_config)
            await client.connect()
            self.clients[name] = client
            logger.info(f"Connected to {client_config.name} at {client_config.endpoint}")

    async def teardown(self) -> None:
        """Close all client connections."""
        for client in self.clients.values():
            await client.close()

    def clients_for(self, chain_kind: str) -> Dict[str, Client]:
        return {
            name: client
            for name, client in self.clients.items()
            if client.config.supports(chain_kind)
        }

    async def load_state_all(
        self, clients: Dict[str, Client], state: Dict[str, Any]
    ) -> ComparisonResult:
        """Load identical state into all clients and verify digests match."""
        digests = {}
        for name, client in clients.items():
            digest = await client.load_state(state)
            if digest:
                digests[name] = digest
            else:
                logger.error(f"Failed to load state in {name}")

        return self.comparator.compare_state_digests(digests, "state_load")

    async def run_vector(self, vector: Dict[str, Any]) -> TestResult:
        """Run a single test vector."""
        vector_name = vector.get("name", "unknown")
        pre_state = vector.get("pre_state", {})
        chain_kind = pre_state.get("chain_kind", "evm")
        start_time = time.time()

        def _result(passed: bool, **kwargs: Any) -> TestResult:
            return TestResult(
                vector_name=vector_name,
                suite_name="",
                passed=passed,
                execution_time_ms=(time.time() - start_time) * 1000,
                chain_kind=chain_kind,
                **kwargs,
            )

        clients = self.clients_for(chain_kind)
        if REFERENCE_CLIENT not in clients:
            return _result(False, error="Reference client unavailable")

        try:
            resets = await asyncio.gather(*[c.reset_state() for c in clients.values()])
            if not all(resets):
                return _result(False, error="Failed to reset clients")

            if pre_state:
                loaded = await self.load_state_all(clients, pre_state)
                if loaded.has_divergences:
                    return _result(False, comparison=loaded, error="State load divergence")

            tx = vector.get("transaction")
            if not tx:
                return _result(True)

            results = {name: await client.execute_tx(tx) for name, client in clients.items()}
            comparison = self.comparator.compare_results(results, vector_name)
            if "expected" in vector:
                comparison = _merge(
                    self.comparator.compare_expected(vector["expected"], results, vector_name),
                    comparison,
                )
            reference = results[REFERENCE_CLIENT]
            return _result(
                not comparison.has_divergences,
                comparison=comparison,
                error_code=reference.get("error_code", 0),
                revealed_secrets=list(reference.get("revealed_secrets", [])),
            )

        except Exception as e:
            logger.exception(f"Error running vector {vector_name}")
            return _result(False, error=str(e))

    async def run_suite(self, suite_path: str) -> SuiteResult:
        """Run a test suite from a YAML file."""
        suite_name = Path(suite_path).stem
        logger.info(f"Running suite: {suite_name}")

        start_time = time.time()

        with open(suite_path) as f:
            suite = yaml.safe_load(f) or {}

        vectors = suite.get("test_vectors", [])
        test_results = []

        for vector in vectors:
            result = await self.run_vector(vector)
            result.suite_name = suite_name
            test_results.append(result)

            status = "PASS" if result.passed else "FAIL"
            logger.info(f"  [{status}] {result.vector_name}")

            if not result.passed and self.config.stop_on_first_failure:
                break

        passed = sum(1 for r in test_results if r.passed)
        failed = sum(1 for r in test_results if not r.passed)

        return SuiteResult(
            suite_name=suite_name,
            total_tests=len(test_results),
            passed_tests=passed,
            failed_tests=failed,
            skipped_tests=len(vectors) - len(test_results),
            execution_time_ms=(time.time() - start_time) * 1000,
            test_results=test_results,
        )

    async def run_all(self, vector_paths: List[str]) -> ConformanceReport:
        """Run all test suites."""
        start_time = time.time()

        suite_results = []
        for path in vector_paths:
            suite_results.append(await self.run_suite(path))
            if self.config.stop_on_first_failure and suite_results[-1].failed_tests:
                break

        return self.reporter.generate_report(
            suite_results=suite_results,
            clients=list(self.clients.keys()),
            reference_client=self.comparator.reference_client,
            execution_time_ms=(time.time() - start_time) * 1000,
        )


def find_vector_files(vector_dir: str) -> List[str]:
    """Find all vector YAML files in directory."""
    patterns = [
        os.path.join(vector_dir, "**", "*.yaml"),
        os.path.join(vector_dir, "**", "*.yml"),
    ]

    files = []
    for pattern in patterns:
        files.extend(glob.glob(pattern, recursive=True))

    return sorted(files)


@click.command()
@click.option(
    "--vectors",
    default=None,
    help="Path to vectors directory or specific YAML file",
)
@click.option(
    "--evm-endpoint",
    default=None,
    help="EVM escrow implementation endpoint URL",
)
@click.option(
    "--ton-endpoint",
    default=None,
    help="TON order implementation endpoint URL",
)
@click.option(
    "--result-dir",
    default=None,
    help="Directory to write results",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.option(
    "--stop-on-failure",
    is_flag=True,
    help="Stop on first test failure",
)
def main(
    vectors: Optional[str],
    evm_endpoint: Optional[str],
    ton_endpoint: Optional[str],
    result_dir: Optional[str],
    verbose: bool,
    stop_on_failure: bool,
) -> None:
    """Run HTLC conformance tests."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    # Load config from environment, then override with CLI args
    config = HarnessConfig.from_env()

    if evm_endpoint:
        config.set_endpoint("evm-node", evm_endpoint)
    if ton_endpoint:
        config.set_endpoint("ton-node", ton_endpoint)
    if result_dir:
        config.result_dir = result_dir
    if verbose:
        config.verbose = True
    if stop_on_failure:
        config.stop_on_first_failure = True
    if config.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    vector_dir = vectors or config.vector_dir
    if os.path.isfile(vector_dir):
        vector_files = [vector_dir]
    else:
        vector_files = find_vector_files(vector_dir)

    if not vector_files:
        logger.error(f"No vector files found in {vector_dir}")
        sys.exit(1)

    logger.info(f"Found {len(vector_files)} vector files")

    async def run() -> int:
        harness = ConformanceHarness(config)

        try:
            await harness.setup()
            report = await harness.run_all(vector_files)

            harness.reporter.write_json_report(report)
            harness.reporter.write_summary(report)
            harness.reporter.print_summary(report)

            return 0 if report.total_failed == 0 else 1

        finally:
            await harness.teardown()

    exit_code = asyncio.run(run())
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
