"""
Configuration management for the conformance test harness.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Tuple

LOCAL_ENDPOINT = "local://"

REFERENCE_CLIENT = "python-model"


@dataclass
class ClientConfig:
    """Configuration for a single client endpoint."""
    name: str
    endpoint: str
    # Ledgers the client implements ("evm", "ton").
    chain_kinds: Tuple[str, ...] = ("evm", "ton")
    enabled: bool = True
    timeout: float = 30.0

    @property
    def is_local(self) -> bool:
        return self.endpoint == LOCAL_ENDPOINT

    def supports(self, chain_kind: str) -> bool:
        return chain_kind in self.chain_kinds


def _flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("true", "1", "yes")


@dataclass
class HarnessConfig:
    """Main configuration for the test harness."""
    # Client endpoints
    clients: Dict[str, ClientConfig] = field(default_factory=dict)

    # Paths
    vector_dir: str = "vectors"
    result_dir: str = "conformance/results"

    # Execution settings
    stop_on_first_failure: bool = False
    verbose: bool = False

    # Timeouts
    request_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        """Load configuration from environment variables.

        The in-process Python model is always present and is the reference.
        External implementations are enabled only when their endpoint is set.
        """
        config = cls()

        evm_endpoint = os.environ.get("EVM_ENDPOINT", "")
        ton_endpoint = os.environ.get("TON_ENDPOINT", "")

        config.clients = {
            REFERENCE_CLIENT: ClientConfig(
                name="Python model",
                endpoint=LOCAL_ENDPOINT,
            ),
            "evm-node": ClientConfig(
                name="EVM escrow node",
                endpoint=evm_endpoint,
                chain_kinds=("evm",),
                enabled=bool(evm_endpoint),
            ),
            "ton-node": ClientConfig(
                name="TON order node",
                endpoint=ton_endpoint,
                chain_kinds=("ton",),
                enabled=bool(ton_endpoint),
            ),
        }

        # Load paths
        config.vector_dir = os.environ.get("VECTOR_DIR", config.vector_dir)
        config.result_dir = os.environ.get("RESULT_DIR", config.result_dir)

        # Load settings
        config.verbose = _flag("VERBOSE")
        config.stop_on_first_failure = _flag("STOP_ON_FIRST_FAILURE")

        return config

    def set_endpoint(self, client: str, endpoint: str) -> None:
        self.clients[client].endpoint = endpoint
        self.clients[client].enabled = bool(endpoint)

    def get_enabled_clients(self) -> Dict[str, ClientConfig]:
        """Get only enabled client configurations."""
        return {
            name: client
            for name, client in self.clients.items()
            if client.enabled
        }
