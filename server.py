#!/usr/bin/env python3
"""
Dev server launcher for the auto-pick API.

Keeps a single uvicorn instance alive: a stale one from a previous run is
stopped before a new one starts.

Usage:
    python server.py start   # Start server (stops existing first, Ctrl+C to stop)
    python server.py stop    # Stop server
    python server.py status  # Check if running
"""

import os
import sys
import signal
import subprocess
import time
from pathlib import Path

ROOT = Path(__file__).parent
PID_FILE = ROOT / "server.pid"
HOST = os.environ.get("API_HOST", "0.0.0.0")
PORT = int(os.environ.get("API_PORT", "8000"))
IS_WINDOWS = os.name == "nt"


def _run(args: list[str]) -> str:
    """Run a command and return stdout; empty string if the tool is missing."""
    try:
        return subprocess.run(args, capture_output=True, text=True).stdout
    except FileNotFoundError:
        return ""


def find_server_pids() -> list[int]:
    """PIDs of uvicorn processes serving main:app."""
    if IS_WINDOWS:
        pids = []
        for line in _run(["tasklist", "/FI", "IMAGENAME eq python.exe", "/FO", "CSV", "/NH"]).splitlines():
            parts = line.split(",")
            if len(parts) >= 2 and parts[1].strip('"').isdigit():
                pids.append(int(parts[1].strip('"')))
        return pids

    return [int(pid) for pid in _run(["pgrep", "-f", "uvicorn.*main:app"]).split() if pid.isdigit()]


def stop_pid(pid: int) -> bool:
    """Terminate one process. Returns False if it was already gone."""
    try:
        if IS_WINDOWS:
            _run(["taskkill", "/F", "/PID", str(pid)])
        else:
            os.kill(pid, signal.SIGTERM)
        return True
    except (ProcessLookupError, PermissionError):
        return False


def port_in_use() -> bool:
    if IS_WINDOWS:
        return any(
            f":{PORT}" in line and "LISTENING" in line
            for line in _run(["netstat", "-ano"]).splitlines()
        )
    return bool(_run(["lsof", "-i", f":{PORT}"]).strip())


def stop_existing() -> bool:
    """Stop the recorded server and any orphaned uvicorn processes."""
    stopped = False

    if PID_FILE.exists():
        try:
            pid = int(PID_FILE.read_text().strip())
            if stop_pid(pid):
                print(f"[OK] Stopped server (PID: {pid})")
                stopped = True
        except ValueError:
            pass
        PID_FILE.unlink()

    for pid in find_server_pids():
        if stop_pid(pid):
            print(f"[OK] Stopped orphaned server (PID: {pid})")
            stopped = True

    if stopped:
        time.sleep(1)
    return stopped


def start_server() -> None:
    print("Starting auto-pick API...")
    stop_existing()

    if port_in_use():
        print(f"[ERROR] Port {PORT} is still in use")
        print("   Wait a moment or run: python server.py stop")
        sys.exit(1)

    proc = subprocess.Popen(
        [
            sys.executable, "-m", "uvicorn", "main:app",
            "--host", HOST,
            "--port", str(PORT),
            "--reload",
        ],
        cwd=ROOT,
    )
    PID_FILE.write_text(str(proc.pid))
    print(f"[OK] Server started (PID: {proc.pid})")
    print(f"[OK] API:    http://localhost:{PORT}/api/auto-pick")
    print(f"[OK] Health: http://localhost:{PORT}/health")
    print("\nPress Ctrl+C to stop")

    try:
        proc.wait()
    except KeyboardInterrupt:
        print("\nShutting down...")
        proc.terminate()
        try:
            proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            proc.kill()
        print("[OK] Server stopped")
    finally:
        if PID_FILE.exists():
            PID_FILE.unlink()


def stop_server() -> None:
    print("Stopping server...")
    if not stop_existing():
        print("[OK] No server processes found")


def show_status() -> None:
    if PID_FILE.exists() or find_server_pids() or port_in_use():
        print(f"[OK] Server is running on port {PORT}")
    else:
        print("[NOT RUNNING] Start with: python server.py start")


def main() -> None:
    command = sys.argv[1] if len(sys.argv) > 1 else "start"
    commands = {"start": start_server, "stop": stop_server, "status": show_status}

    if command not in commands:
        print("Usage: python server.py [start|stop|status]")
        sys.exit(1)
    commands[command]()


if __name__ == "__main__":
    main()
