#!/usr/bin/env python3
"""Run repository checks: ruff, pyright, and optional tests.

Tests run with Qt in offscreen mode so the Qt bridge tests work without a
display. Exits non-zero as soon as one check fails.
"""

from __future__ import annotations

import argparse
import os
import subprocess
import sys


def run(cmd: list[str], env: dict[str, str] | None = None) -> int:
    print("=>", " ".join(cmd))
    res = subprocess.run(cmd, check=False, env=env)
    return res.returncode


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--no-tests", action="store_true", help="Skip running pytest")
    parser.add_argument("--no-fix", action="store_true", help="Report ruff findings without fixing them")
    parser.add_argument("pytest_args", nargs=argparse.REMAINDER, help="Extra pytest args")
    args = parser.parse_args()

    ruff_cmd = [sys.executable, "-m", "ruff", "check", "."]
    if not args.no_fix:
        ruff_cmd.insert(4, "--fix")
    rc = run(ruff_cmd)
    if rc != 0:
        print("ruff failed")
        return rc

    rc = run([sys.executable, "-m", "pyright"]) if sys.platform != "win32" else run(["pyright"])
    if rc != 0:
        print("pyright failed")
        return rc

    if not args.no_tests:
        env = os.environ.copy()
        env.setdefault("QT_QPA_PLATFORM", "offscreen")
        user_args = [a for a in args.pytest_args if a != "--"]
        rc = run([sys.executable, "-m", "pytest", "-q", *user_args], env=env)
        if rc != 0:
            print("pytest failed")
            return rc

    print("All checks passed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
