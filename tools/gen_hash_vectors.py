"""Generate hashlock / hash YAML vectors from Python specs."""

from __future__ import annotations

from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tools"))

from htlc_spec.crypto.hash_vectors import (  # noqa: E402
    blake3_vectors,
    hashlock_vectors,
    keccak256_vectors,
)
from yaml_dump import write_yaml  # noqa: E402


def main() -> None:
    out = ROOT / "vectors" / "crypto"
    out.mkdir(parents=True, exist_ok=True)

    write_yaml(out / "hashlock.yaml", hashlock_vectors())
    write_yaml(out / "keccak256.yaml", keccak256_vectors())
    write_yaml(out / "blake3.yaml", blake3_vectors())


if __name__ == "__main__":
    main()
