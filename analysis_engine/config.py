"""Runtime settings read from the environment (and a local ``.env`` file).

Recognised variables:

* ``KACHE_STATE_DIR``        – directory holding the persisted engine documents
* ``KACHE_RECORDS_PATH``     – JSON file backing the record store
* ``KACHE_LOG_LEVEL``        – logging level used by the scripts (default ``INFO``)
* ``KACHE_ANALYSIS_TIMEOUT`` – seconds to wait for one analysis pass (unset = wait forever)
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()  # Load environment variables from .env file

logger = logging.getLogger(__name__)

_DATA_DIR = Path("data")


class EngineSettings(BaseModel):
    """Settings shared by the engines and the CLI scripts."""

    state_dir: Path = Field(_DATA_DIR / "state", description="Directory for persisted derived state")
    records_path: Path = Field(_DATA_DIR / "records.json", description="Record store JSON file")
    log_level: str = Field("INFO", description="Logging level name")
    analysis_timeout: Optional[float] = Field(None, gt=0, description="Seconds to wait for an analysis pass")

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """Build settings from ``KACHE_*`` environment variables."""
        values = {}
        if os.getenv("KACHE_STATE_DIR"):
            values["state_dir"] = Path(os.environ["KACHE_STATE_DIR"])
        if os.getenv("KACHE_RECORDS_PATH"):
            values["records_path"] = Path(os.environ["KACHE_RECORDS_PATH"])
        if os.getenv("KACHE_LOG_LEVEL"):
            values["log_level"] = os.environ["KACHE_LOG_LEVEL"].upper()

        timeout_raw = os.getenv("KACHE_ANALYSIS_TIMEOUT")
        if timeout_raw:
            try:
                timeout = float(timeout_raw)
            except ValueError:
                timeout = 0.0
            if timeout > 0:
                values["analysis_timeout"] = timeout
            else:
                logger.warning(f"Ignoring invalid KACHE_ANALYSIS_TIMEOUT={timeout_raw!r}")

        return cls(**values)
