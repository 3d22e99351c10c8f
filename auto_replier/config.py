"""Centralized configuration for the WhatsApp Auto-Replier.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/whatsapp-auto-replier/<VARIABLE_NAME>``.

Every value in the "required" group is resolved at import time, so a missing
credential stops the process before the server ever binds a port.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

_SSM_PREFIX = "/whatsapp-auto-replier"
_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store.

    Returns ``None`` if the parameter does not exist or boto3 is not
    installed, so the caller can raise a single clear error.
    """
    try:
        import boto3  # noqa: PLC0415 — optional dependency (``aws`` extra)

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"{_SSM_PREFIX}/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed", name)
        return None


def _require_env(name: str) -> str:
    """Return a config value from env-var or SSM, or raise a clear error."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value

    if _ON_AWS:
        ssm_value = _get_ssm_parameter(name)
        if ssm_value:
            return ssm_value

    raise OSError(
        f"Missing required configuration: {name}. "
        f"Set it in .env (local) or SSM Parameter Store {_SSM_PREFIX}/{name} (AWS)."
    )


# ── Generation backend (Gemini) ─────────────────────────────────────
GEMINI_API_KEY: str = _require_env("GEMINI_API_KEY")
MODEL_NAME: str = os.getenv("MODEL_NAME", "gemini-2.5-flash")
KNOWLEDGE_BASE_PATH: Path = Path(
    os.getenv(
        "KNOWLEDGE_BASE_PATH",
        str(_PROJECT_ROOT / "data" / "knowledge_base.json"),
    )
)

# ── Messaging backend (Vonage Messages API, WhatsApp channel) ───────
VONAGE_WHATSAPP_NUMBER: str = _require_env("VONAGE_WHATSAPP_NUMBER")
VONAGE_API_KEY: str = _require_env("VONAGE_API_KEY")
VONAGE_API_SECRET: str = _require_env("VONAGE_API_SECRET")
# Sandbox by default; point at https://api.nexmo.com for a live WABA number.
VONAGE_API_HOST: str = os.getenv("VONAGE_API_HOST", "https://messages-sandbox.nexmo.com")
VONAGE_REQUEST_TIMEOUT: float = float(os.getenv("VONAGE_REQUEST_TIMEOUT", "15"))

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "3000"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
