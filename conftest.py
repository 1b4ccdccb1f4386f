"""Pytest configuration.

Ensures that the repository root is importable so that ``shield_action`` can
be resolved when tests are executed without an editable install, and keeps
the package log file out of the working tree.
"""

import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault(
    "SHIELD_LOG_PATH",
    str(Path(tempfile.gettempdir()) / "shield_action" / "test.log"),
)
