from __future__ import annotations

import os
from typing import Any, Dict

from dotenv import find_dotenv, load_dotenv

# ------------------------------------------------------------
# ENVIRONMENT-AWARE CONFIGURATION
# ------------------------------------------------------------

# DEFAULT_CONFIG holds every runtime parameter of the analyst desk.
# Each section belongs to one subsystem:
#   - llm          → model name, token limit, temperature for LLM analysts
#   - coordinator  → pool size, batch deadline, shutdown grace period
#   - weights      → static influence of each analyst in the consensus
#
# Values start from conservative defaults and are overridden through
# environment variables (a local .env file is loaded first, never overriding
# variables that are already set).

load_dotenv(find_dotenv(usecwd=True), override=False)


def _weight_env(worker_id: str, default: float) -> float:
    return float(os.getenv(f"WEIGHT_{worker_id.upper()}", str(default)))


DEFAULT_CONFIG: Dict[str, Any] = {
    # --------------------------------------------------------
    # 1️⃣ LLM CONFIGURATION
    # --------------------------------------------------------
    "llm": {
        "model": os.getenv("LLM_MODEL", "gpt-4o-mini"),

        # Low temperature keeps analyst verdicts stable between runs.
        "temperature": float(os.getenv("LLM_TEMPERATURE", "0.2")),

        "max_tokens": int(os.getenv("LLM_MAX_TOKENS", "800")),

        # HTTP timeout (seconds) for a single completion call.
        "timeout": int(os.getenv("LLM_TIMEOUT", "30")),
    },

    # --------------------------------------------------------
    # 2️⃣ COORDINATOR
    # --------------------------------------------------------
    "coordinator": {
        # Fixed pool size; extra analysts queue instead of spawning threads.
        "max_concurrency": int(os.getenv("COORDINATOR_MAX_CONCURRENCY", "5")),

        # One deadline shared by the whole batch, not per analyst.
        "timeout_sec": float(os.getenv("COORDINATOR_TIMEOUT_SEC", "30")),

        # How long shutdown waits for in-flight analysts before cancelling.
        "shutdown_grace_sec": float(os.getenv("COORDINATOR_SHUTDOWN_GRACE_SEC", "5")),

        # Weight used for analysts that never had one configured.
        "default_weight": 1.0,
    },

    # --------------------------------------------------------
    # 3️⃣ ANALYST WEIGHTS
    # --------------------------------------------------------
    "weights": {
        "technical": _weight_env("technical", 0.4),
        "fundamental": _weight_env("fundamental", 0.5),
        "sentiment": _weight_env("sentiment", 0.1),
    },

    "log_level": os.getenv("LOG_LEVEL", "INFO"),
}
