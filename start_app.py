#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""One-click launcher for Music Tagger.

This script:
  1) finds a free localhost port (default preference: 8000)
  2) starts the FastAPI backend (uvicorn) as a child process
  3) waits until the server is reachable
  4) opens the default web browser on the API page

Notes:
- The server stops when this process stops (close the terminal window).
- If port 8000 is occupied, it will automatically pick another free port.
"""

from __future__ import annotations

import argparse
import os
import socket
import subprocess
import sys
import time
import webbrowser

from musictagger.config import load_config, save_config
from musictagger.project import ensure_project_suffix


def _port_in_use(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.settimeout(0.2)
        try:
            return s.connect_ex((host, port)) == 0
        except OSError:
            return True


def pick_port(host: str, preferred: int, attempts: int = 50) -> int:
    """First port at or after preferred with nothing listening on it."""
    start = preferred if 1024 <= preferred <= 65535 else 8000
    for offset in range(attempts):
        candidate = 1024 + (start - 1024 + offset) % (65536 - 1024)
        if not _port_in_use(host, candidate):
            return candidate
    raise RuntimeError(f"No free port among {attempts} tried from {start}")


def wait_for_server(host: str, port: int, timeout: float = 12.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            with socket.create_connection((host, port), timeout=0.2):
                return True
        except OSError:
            time.sleep(0.1)
    return False


def main() -> int:
    parser = argparse.ArgumentParser(description="Start Music Tagger and open the browser.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000, help="Preferred port (auto-fallback if occupied)")
    parser.add_argument("--no-browser", action="store_true", help="Do not open the browser")
    parser.add_argument("--reload", action="store_true", help="Enable uvicorn auto-reload (developer mode)")
    parser.add_argument("--project", default="", help="Project file to open (remembered in config.json)")
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    args = parser.parse_args()

    # Ensure working directory is project root (where this file lives).
    here = os.path.dirname(os.path.abspath(__file__))
    os.chdir(here)

    port = pick_port(args.host, args.port)
    url = f"http://{args.host}:{port}/docs"

    cmd = [
        sys.executable,
        "-m",
        "uvicorn",
        "musictagger.main:app",
        "--host",
        args.host,
        "--port",
        str(port),
        "--log-level",
        args.log_level,
    ]
    if args.reload:
        cmd.append("--reload")

    print("\n=== Music Tagger ===")
    print(f"Starting server on: {args.host}:{port}")
    print("Close this window to stop the server.")

    env = dict(os.environ)
    env["MUSICTAGGER_LOG_LEVEL"] = args.log_level
    if args.project:
        cfg = load_config()
        cfg.project_file = str(ensure_project_suffix(os.path.abspath(args.project)))
        save_config(cfg)

    # Start backend
    proc = subprocess.Popen(cmd, stdout=None, stderr=None, env=env)

    # Wait until listening, then open browser
    if not args.no_browser:
        if wait_for_server(args.host, port):
            try:
                webbrowser.open(url)
                print(f"Opened browser: {url}")
            except Exception:
                print(f"Server is running. Please open: {url}")
        else:
            print(f"Server may still be starting. Please open: {url}")

    # Block until server exits
    try:
        return proc.wait()
    except KeyboardInterrupt:
        try:
            proc.terminate()
        except Exception:
            pass
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
