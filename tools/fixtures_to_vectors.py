#!/usr/bin/env python3
"""Convert spec fixtures into harness vector suites.

State-transition fixtures (`{"cases": [...]}`) become YAML suites of runnable
vectors carrying the expected result code and post-state digest. Pre-built
vector files (`{"test_vectors": [...]}`) are mirrored as YAML unchanged.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tools"))

from htlc_spec.errors import ErrorCode  # noqa: E402
from htlc_spec.state_digest import compute_state_digest  # noqa: E402
from yaml_dump import write_yaml  # noqa: E402

MAPPING = {
    "crypto": "crypto",
    "transactions": "execution/transactions",
    "scenarios": "execution/scenarios",
}


def map_dest(rel: Path) -> Path:
    if not rel.parts:
        return Path("unmapped")
    mapped = MAPPING.get(rel.parts[0])
    if not mapped:
        return Path("unmapped") / rel
    return Path(mapped) / Path(*rel.parts[1:])


def map_error_code(name: str | None) -> int:
    if not name:
        return int(ErrorCode.SUCCESS)
    try:
        return int(ErrorCode[name])
    except KeyError:
        return int(ErrorCode.UNKNOWN)


def case_to_vector(case: dict[str, Any]) -> dict[str, Any]:
    expected = case.get("expected", {})
    post_state = expected.get("post_state")
    return {
        "name": case.get("name", ""),
        "description": case.get("description", ""),
        "pre_state": case.get("pre_state"),
        "transaction": case.get("tx"),
        "expected": {
            "success": bool(expected.get("ok", False)),
            "error_code": map_error_code(expected.get("error")),
            "state_digest": compute_state_digest(post_state) if post_state else "",
        },
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Convert fixtures to vectors")
    parser.add_argument("--fixtures", default=str(ROOT / "fixtures"))
    parser.add_argument("--vectors", default=str(ROOT / "vectors"))
    args = parser.parse_args()

    fixtures = Path(args.fixtures).resolve()
    vectors = Path(args.vectors).resolve()

    if not fixtures.exists():
        raise SystemExit(f"fixtures dir not found: {fixtures}")
    vectors.mkdir(parents=True, exist_ok=True)

    count = 0
    for path in sorted(fixtures.rglob("*.json")):
        rel = path.relative_to(fixtures)
        dest = (vectors / map_dest(rel)).with_suffix(".yaml")
        dest.parent.mkdir(parents=True, exist_ok=True)

        data = json.loads(path.read_text())
        if isinstance(data.get("cases"), list):
            write_yaml(dest, {"test_vectors": [case_to_vector(c) for c in data["cases"]]})
        elif isinstance(data.get("test_vectors"), list):
            write_yaml(dest, data)
        else:
            continue
        count += 1

    print(f"Written {count} vector files into {vectors}")


if __name__ == "__main__":
    main()
