#!/usr/bin/env python3
import contextlib
import os
from pathlib import Path

import psutil
from utils import API_PID_FILE, REPO_ROOT, info, ok


def stop_by_pid_file(path: Path) -> None:
    if not path.exists():
        info("PID file not found, nothing to stop")
        return
    pid = int(path.read_text(encoding="ascii"))
    try:
        proc = psutil.Process(pid)
        proc.terminate()
        proc.wait(timeout=10)
        ok(f"Stopped PID {pid}")
    except psutil.NoSuchProcess:
        info("すでに停止済みです")
    except psutil.TimeoutExpired:
        proc.kill()
        ok(f"Killed PID {pid}")
    with contextlib.suppress(OSError):
        path.unlink(missing_ok=True)


def main() -> int:
    os.chdir(REPO_ROOT)
    stop_by_pid_file(API_PID_FILE)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
