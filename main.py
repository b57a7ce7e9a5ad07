from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

# Ensure the src/ directory is on sys.path so we can import survey_relay
ROOT_DIR = Path(__file__).resolve().parent
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from survey_relay.config import LOG_LEVEL  # type: ignore
from survey_relay.dev_server import app  # type: ignore


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host="127.0.0.1", port=int(os.getenv("PORT", "8888")), log_level=LOG_LEVEL.lower())
