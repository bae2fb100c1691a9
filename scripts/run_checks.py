#!/usr/bin/env python3
"""Run repository checks: ruff, pyright, and the test suite.

Exits non-zero on the first failing step.
"""

from __future__ import annotations

import argparse
import subprocess
import sys


def run(cmd: list[str]) -> int:
    print("=>", " ".join(cmd))
    res = subprocess.run(cmd, check=False)
    return res.returncode


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--no-tests", action="store_true", help="Skip running pytest")
    parser.add_argument(
        "--no-imaging", action="store_true", help="Skip tests that need libvips or Qt (marker: imaging)"
    )
    parser.add_argument("--fix", action="store_true", help="Let ruff apply fixes")
    args = parser.parse_args()

    ruff = [sys.executable, "-m", "ruff", "check", "rasterkit", "tests", "scripts"]
    if args.fix:
        ruff.append("--fix")
    steps: list[tuple[str, list[str]]] = [
        ("ruff", ruff),
        # pyright may only be on PATH (npm install)
        ("pyright", [sys.executable, "-m", "pyright"] if sys.platform != "win32" else ["pyright"]),
    ]
    if not args.no_tests:
        pytest_cmd = [sys.executable, "-m", "pytest", "-q"]
        if args.no_imaging:
            pytest_cmd += ["-m", "not imaging"]
        steps.append(("pytest", pytest_cmd))

    for name, cmd in steps:
        rc = run(cmd)
        if rc != 0:
            print(f"{name} failed")
            return rc

    print("All checks passed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
