#!/usr/bin/env python
"""
Run the Landed Cost Estimator API.

Usage:
    python scripts/run_api.py [--port 8000] [--no-reload]
"""
import argparse
import subprocess
import sys
import os
from pathlib import Path


def main():
    parser = argparse.ArgumentParser(description="Run the Landed Cost Estimator API")
    parser.add_argument("--host", default=os.environ.get("LANDED_COST_API_HOST", "0.0.0.0"))
    parser.add_argument("--port", default=os.environ.get("LANDED_COST_API_PORT", "8000"))
    parser.add_argument("--no-reload", action="store_true", help="Disable auto-reload")
    args = parser.parse_args()

    project_root = Path(__file__).parent.parent
    os.chdir(project_root)

    # Ensure src is in python path
    env = os.environ.copy()
    src_path = str(project_root / "src")
    if "PYTHONPATH" in env:
        env["PYTHONPATH"] = f"{src_path}{os.pathsep}{env['PYTHONPATH']}"
    else:
        env["PYTHONPATH"] = src_path

    cmd = [
        sys.executable, "-m", "uvicorn",
        "landed_cost.api.main:app",
        "--host", args.host,
        "--port", str(args.port),
    ]
    if not args.no_reload:
        cmd.append("--reload")

    print(f"Starting Landed Cost Estimator API on {args.host}:{args.port}...")
    try:
        subprocess.run(cmd, env=env)
    except KeyboardInterrupt:
        print("\nAPI stopped.")


if __name__ == "__main__":
    main()
