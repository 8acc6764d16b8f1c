#!/usr/bin/env python
"""
Start the trek costing API under uvicorn.

Usage:
    python scripts/run_api.py [--host 0.0.0.0] [--port 8000] [--memory] [--no-reload]

--memory keeps quotes in process memory instead of data/quotes.json.
"""
import argparse
import os
import subprocess
import sys
from pathlib import Path


def main():
    parser = argparse.ArgumentParser(description="Run the trek costing API")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--memory", action="store_true", help="use the in-memory quote store")
    parser.add_argument("--no-reload", action="store_true")
    args = parser.parse_args()

    project_root = Path(__file__).parent.parent
    env = os.environ.copy()
    src_path = str(project_root / "src")
    env["PYTHONPATH"] = os.pathsep.join(p for p in (src_path, env.get("PYTHONPATH")) if p)
    if args.memory:
        env["TREK_COSTING_STORE_BACKEND"] = "memory"

    cmd = [
        sys.executable, "-m", "uvicorn",
        "trek_costing.api.main:app",
        "--host", args.host,
        "--port", str(args.port),
    ]
    if not args.no_reload:
        cmd.append("--reload")

    print(f"Starting Trek Costing API on {args.host}:{args.port} "
          f"({env.get('TREK_COSTING_STORE_BACKEND', 'json')} store)...")
    try:
        subprocess.run(cmd, env=env, cwd=project_root)
    except KeyboardInterrupt:
        print("\nAPI stopped.")


if __name__ == "__main__":
    main()
