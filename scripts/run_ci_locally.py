#!/usr/bin/env python3
"""
Run CI steps locally using the ACTIVE virtual environment.

Order:
  1) uv sync --all-extras [--frozen if uv.lock exists]
  2) black --check on dmsoundex/, scripts/ and tests/
  3) mypy on dmsoundex/
  4) pytest tests/ with coverage and PYTHONPATH=.
"""

import os
import sys
import shutil
import subprocess
from pathlib import Path

BLACK_VERSION = "24.8.0"
LINE_LENGTH = "120"


def repo_root() -> Path:
    here = Path(__file__).resolve().parent
    for d in [here] + list(here.parents):
        if (d / "pyproject.toml").exists():
            return d
    return here


REPO = repo_root()


def uv_exe() -> list[str]:
    uv_path = shutil.which("uv")
    if uv_path:
        return [uv_path]
    return [sys.executable, "-m", "uv"]


def run(cmd: list[str], *, env: dict[str, str] | None = None) -> None:
    print(">>>", " ".join(cmd))
    subprocess.run(cmd, check=True, cwd=str(REPO), env=env)


def main() -> None:
    sync_args = ["sync", "--active", "--all-extras"]
    if (REPO / "uv.lock").exists():
        sync_args.append("--frozen")
    run(uv_exe() + sync_args)

    uvx = shutil.which("uvx")
    black = [uvx, "--from", f"black=={BLACK_VERSION}", "black"] if uvx else [sys.executable, "-m", "black"]
    run(black + ["dmsoundex", "scripts", "tests", "--check", "--line-length", LINE_LENGTH])

    run(uv_exe() + ["run", "--active", "mypy", "dmsoundex", "--ignore-missing-imports"])

    env = os.environ.copy()
    env["PYTHONPATH"] = str(REPO)
    run(
        uv_exe()
        + [
            "run",
            "--active",
            "pytest",
            "tests/",
            "--cov=dmsoundex",
            "--cov-report=term-missing",
            "--cov-fail-under=90",
        ],
        env=env,
    )

    print("\nALL CHECKS PASSED")


if __name__ == "__main__":
    try:
        main()
    except subprocess.CalledProcessError as e:
        print(f"\nCommand failed with exit code {e.returncode}", file=sys.stderr)
        sys.exit(e.returncode)
