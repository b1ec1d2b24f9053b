#!/usr/bin/env python3
"""
Run the release step, then exec gunicorn on app.wsgi:app.

Usage:
    python scripts/start.py [--skip-release]

PORT (default 4000) and WEB_CONCURRENCY (default 2) come from the environment.
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEFAULT_PORT = 4000
DEFAULT_WORKERS = 2


def _env_int(name: str, default: int, *, lo: int, hi: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    if not raw.isdigit() or not lo <= int(raw) <= hi:
        raise ValueError(f"{name} must be an integer in {lo}-{hi} (got {raw!r}).")
    return int(raw)


def gunicorn_argv(port: int, workers: int) -> list[str]:
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", str(workers),
        "--timeout", "60",
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Migrate, seed and serve custmgr.")
    parser.add_argument("--skip-release", action="store_true", help="do not run migrations/seed first")
    args = parser.parse_args(argv)

    try:
        port = _env_int("PORT", DEFAULT_PORT, lo=1, hi=65535)
        workers = _env_int("WEB_CONCURRENCY", DEFAULT_WORKERS, lo=1, hi=64)
    except ValueError as e:
        print(f"ERROR: {e}", flush=True)
        sys.exit(1)

    if not args.skip_release:
        from scripts.release import run_release

        try:
            run_release()
        except Exception as e:
            print(f"Release failed: {e}", flush=True)
            sys.exit(1)

    # alembic owns the schema now; workers must not create_all or seed
    os.environ.setdefault("AUTO_CREATE_SCHEMA", "0")
    cmd = gunicorn_argv(port, workers)
    print(f"exec {' '.join(cmd)}", flush=True)
    os.execvp(cmd[0], cmd)


if __name__ == "__main__":
    main()
