from __future__ import annotations

import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------

# Root of the installed package (src/survey_relay)
PACKAGE_DIR = Path(__file__).resolve().parent

# Bundled static data
DATA_DIR = PACKAGE_DIR / "data"
DEFAULT_SURVEY_DATA_PATH = DATA_DIR / "survey_responses.json"

# Override to point the query engine at another export (JSON or CSV)
SURVEY_DATA_PATH = Path(
    os.getenv("SURVEY_DATA_PATH", "").strip() or DEFAULT_SURVEY_DATA_PATH
)

# ---------------------------------------------------------------------------
# App identity
# ---------------------------------------------------------------------------

APP_NAME = "Survey Chat Relay"
APP_VERSION = "0.1.0"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()

# ---------------------------------------------------------------------------
# Anthropic Messages API
#
# The key is normally supplied through the environment. Deployments that
# let the browser hold the key may instead send it as `apiKey` in the body.
# ---------------------------------------------------------------------------

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "").strip()
ANTHROPIC_API_URL = os.getenv(
    "ANTHROPIC_API_URL",
    "https://api.anthropic.com/v1/messages",
).strip()
ANTHROPIC_VERSION = os.getenv("ANTHROPIC_VERSION", "2023-06-01").strip()
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-3-5-sonnet-20241022").strip()
ANTHROPIC_TIMEOUT_SECONDS = int(os.getenv("ANTHROPIC_TIMEOUT_SECONDS", "120"))

DEFAULT_MAX_TOKENS = int(os.getenv("DEFAULT_MAX_TOKENS", "4000"))

# ---------------------------------------------------------------------------
# Survey query engine
#
# When SURVEY_QUERY_URL is set, tool calls are sent to a separately deployed
# survey-query function instead of running in process.
# ---------------------------------------------------------------------------

SURVEY_QUERY_URL = os.getenv("SURVEY_QUERY_URL", "").strip()
SURVEY_QUERY_TIMEOUT_SECONDS = int(os.getenv("SURVEY_QUERY_TIMEOUT_SECONDS", "30"))

DEFAULT_QUERY_LIMIT = 20

# Column used to stratify `sample` queries
MEMBERSHIP_CATEGORY_COL = (
    "Please indicate the category which best describes your company's membership."
)
