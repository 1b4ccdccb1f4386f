#!/usr/bin/env python3
"""Shield action API launcher (Windows/macOS/Linux)"""

from __future__ import annotations

import os
import platform
import subprocess
import sys
import time
from typing import TYPE_CHECKING, cast

import requests
from utils import (
    API_HOST,
    API_PID_FILE,
    API_PORT,
    LOG_DIR,
    REPO_ROOT,
    info,
    ok,
    warn,
)

if TYPE_CHECKING:
    from pathlib import Path

sys.path.insert(0, str(REPO_ROOT))

from shield_action.config import load_env_local  # noqa: E402

HTTP_OK_MIN = 200
HTTP_OK_MAX = 400
CREATE_NEW_PROCESS_GROUP = 0x00000200
DETACHED_PROCESS = 0x00000008


def http_ok(url: str, timeout: float = 2.5) -> bool:
    try:
        resp = requests.get(url, timeout=timeout)
    except requests.RequestException:
        return False
    else:
        status = cast("int", getattr(resp, "status_code", 0))
        return HTTP_OK_MIN <= status < HTTP_OK_MAX


def wait_http(url: str, attempts: int = 30, interval: float = 1.0) -> bool:
    for _ in range(attempts):
        if http_ok(url):
            return True
        time.sleep(interval)
        sys.stdout.write(".")
        sys.stdout.flush()
    sys.stdout.write("\n")
    return http_ok(url)


def background_popen(
    cmd: list[str], stdout_path: Path, stderr_path: Path, env: dict[str, str]
) -> subprocess.Popen:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    with stdout_path.open("ab", buffering=0) as stdout_f, stderr_path.open(
        "ab", buffering=0
    ) as stderr_f:
        creationflags = 0
        start_new_session = False
        if platform.system() == "Windows":
            creationflags = CREATE_NEW_PROCESS_GROUP | DETACHED_PROCESS
        else:
            start_new_session = True

        return subprocess.Popen(  # noqa: S603
            cmd,
            cwd=str(REPO_ROOT),
            stdout=stdout_f,
            stderr=stderr_f,
            env=env,
            creationflags=creationflags,
            start_new_session=start_new_session,
        )


def main() -> int:
    os.chdir(REPO_ROOT)
    if not load_env_local(REPO_ROOT):
        warn(".env.local not found, using defaults (in-memory store)")

    env = os.environ.copy()
    env["PYTHONPATH"] = str(REPO_ROOT)

    info("Starting shield action API (uvicorn)...")
    proc = background_popen(
        [
            sys.executable,
            "-m",
            "uvicorn",
            "shield_action.api.main:app",
            "--port",
            str(API_PORT),
            "--host",
            API_HOST,
        ],
        stdout_path=LOG_DIR / "api.log",
        stderr_path=LOG_DIR / "api.err.log",
        env=env,
    )
    API_PID_FILE.write_text(str(proc.pid), encoding="ascii")
    sys.stdout.write("   Waiting for server to respond...\n")
    if wait_http(f"http://{API_HOST}:{API_PORT}/status"):
        ok(f"Shield action API up at http://{API_HOST}:{API_PORT} (PID {proc.pid})")
    else:
        warn("API did not respond in time. Check logs under ./log/")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
