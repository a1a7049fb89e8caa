from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
BACKEND_ENTRYPOINT = REPO_ROOT / "backend" / "server.py"
DEFAULT_DATA_PATH = REPO_ROOT / "data"


def _server_env(data_path: Path, port: int | None, debug: bool) -> dict[str, str]:
    env = dict(os.environ)
    env["DATA_PATH"] = str(data_path)
    if port is not None:
        env["PORT"] = str(port)
    env["FLASK_DEBUG"] = "1" if debug else "0"
    return env


def run_local(data_path: Path = DEFAULT_DATA_PATH, port: int | None = None, debug: bool = True) -> int:
    if not BACKEND_ENTRYPOINT.is_file():
        print(
            f"[run-local] ERROR: backend entrypoint missing: {BACKEND_ENTRYPOINT}",
            file=sys.stderr,
            flush=True,
        )
        return 1
    if not data_path.exists():
        print(
            f"[run-local] ERROR: course data not found: {data_path} "
            "(expected a CSV directory or an .xlsx workbook)",
            file=sys.stderr,
            flush=True,
        )
        return 1

    print(f"[run-local] Starting roadmap server on {data_path}...", flush=True)
    try:
        proc = subprocess.run(
            [sys.executable, str(BACKEND_ENTRYPOINT)],
            cwd=str(REPO_ROOT),
            env=_server_env(data_path, port, debug),
        )
        return proc.returncode
    except KeyboardInterrupt:
        print("\n[run-local] Stopped by user.", flush=True)
        return 130


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run the course roadmap server locally.")
    parser.add_argument(
        "--data",
        default=os.environ.get("DATA_PATH") or str(DEFAULT_DATA_PATH),
        help="CSV directory or xlsx workbook with courses, enrollments and recommendations",
    )
    parser.add_argument("--port", type=int, default=None, help="Port for the Flask server (default: $PORT or 5000)")
    parser.add_argument("--no-debug", action="store_true", help="Run Flask without the debug reloader")
    args = parser.parse_args(argv)

    data_path = Path(args.data)
    if not data_path.is_absolute():
        data_path = REPO_ROOT / data_path
    return run_local(data_path, port=args.port, debug=not args.no_debug)


if __name__ == "__main__":
    raise SystemExit(main())
