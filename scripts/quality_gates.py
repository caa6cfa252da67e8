#!/usr/bin/env python3
"""
fontdesk quality gates.

Runs lint, format, type and test gates in order and writes a JSON report to
artifacts/quality_gates.json. Exit code 0 only if every required gate passed.

Usage:
    python scripts/quality_gates.py            # all gates
    python scripts/quality_gates.py tests      # named gates only
"""

from __future__ import annotations

import datetime
import json
import subprocess
import sys
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path

ARTIFACTS_DIR = Path("artifacts")


@dataclass(frozen=True)
class GateConfig:
    name: str
    command: list[str]
    required: bool = True
    timeout_seconds: int = 600


@dataclass
class GateResult:
    name: str
    status: str  # "pass" | "fail" | "error"
    exit_code: int
    duration_seconds: float
    command: list[str]
    required: bool = True
    stdout: str = ""
    stderr: str = ""


@dataclass
class GatesReport:
    timestamp_utc: str
    overall_status: str
    gates: list[GateResult] = field(default_factory=list)


GATES = [
    GateConfig(name="lint", command=[sys.executable, "-m", "ruff", "check", "."]),
    GateConfig(
        name="format",
        command=[sys.executable, "-m", "ruff", "format", "--check", "."],
        required=False,
    ),
    GateConfig(name="types", command=[sys.executable, "-m", "mypy", "src", "--ignore-missing-imports"]),
    GateConfig(name="tests", command=[sys.executable, "-m", "pytest", "-q", "--maxfail=1"]),
]


def run_gate(gate: GateConfig) -> GateResult:
    print(f"[{gate.name}] {' '.join(gate.command)} ...", end="", flush=True)
    started = time.monotonic()
    try:
        proc = subprocess.run(
            gate.command,
            capture_output=True,
            text=True,
            check=False,
            timeout=gate.timeout_seconds,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        print(" ERROR")
        return GateResult(
            name=gate.name,
            status="error",
            exit_code=-1,
            duration_seconds=time.monotonic() - started,
            command=gate.command,
            required=gate.required,
            stderr=str(e),
        )

    status = "pass" if proc.returncode == 0 else "fail"
    print(f" {status.upper()}")
    return GateResult(
        name=gate.name,
        status=status,
        exit_code=proc.returncode,
        duration_seconds=time.monotonic() - started,
        command=gate.command,
        required=gate.required,
        stdout=proc.stdout,
        stderr=proc.stderr,
    )


def build_report(results: list[GateResult]) -> GatesReport:
    failed = any(r.required and r.status != "pass" for r in results)
    return GatesReport(
        timestamp_utc=datetime.datetime.now(datetime.UTC).isoformat(),
        overall_status="fail" if failed else "pass",
        gates=results,
    )


def write_report(report: GatesReport, artifacts_dir: Path = ARTIFACTS_DIR) -> Path:
    artifacts_dir.mkdir(parents=True, exist_ok=True)
    path = artifacts_dir / "quality_gates.json"
    path.write_text(json.dumps(asdict(report), indent=2))
    return path


def select_gates(names: list[str]) -> list[GateConfig]:
    if not names:
        return list(GATES)
    known = {g.name: g for g in GATES}
    unknown = [n for n in names if n not in known]
    if unknown:
        raise SystemExit(f"Unknown gate(s): {', '.join(unknown)}")
    return [known[n] for n in names]


def main(argv: list[str] | None = None) -> int:
    gates = select_gates(sys.argv[1:] if argv is None else argv)
    print("=== fontdesk: quality gates ===")

    report = build_report([run_gate(g) for g in gates])
    path = write_report(report)
    print(f"\nReport written to: {path}")

    if report.overall_status == "pass":
        print("SUCCESS: all required gates passed.")
        return 0

    for result in report.gates:
        if result.status == "pass":
            continue
        print(f"\n--- {result.name} {result.status.upper()} (exit code {result.exit_code}) ---")
        if result.stdout.strip():
            print(result.stdout)
        if result.stderr.strip():
            print(result.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
