#!/usr/bin/env python3
"""Console-script wrappers for the Kache analysis scripts.

After an editable install (``pip install -e .``) the following commands become
available system-wide:

* ``kache-analyze`` – trend + competitor analysis and strategy generation
* ``kache-state``   – list, inspect or clear persisted engine state

Both forward their command-line arguments to the scripts in ``scripts/``.
"""
from __future__ import annotations

import sys
from pathlib import Path
from subprocess import run

PYTHON = sys.executable
ROOT = Path(__file__).resolve().parents[1]  # Repository root


def _exec(cmd: list[str]) -> None:
    """Execute *cmd* and propagate its exit status."""
    run(cmd, check=True)


# ---------------------------------------------------------------------------
# Entry-points
# ---------------------------------------------------------------------------

def analyze() -> None:
    """Run the complete analysis pipeline."""
    _exec([PYTHON, str(ROOT / "scripts/run_complete_analysis.py"), *sys.argv[1:]])


def state() -> None:
    """Manage persisted engine state."""
    _exec([PYTHON, str(ROOT / "scripts/manage_state.py"), *sys.argv[1:]])
