from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()


def env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r, expected a number", name, raw)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r, expected a positive number", name, raw)
        return default
    return value


def env_url(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip().rstrip("/")


PROJECTS_FILE = os.environ.get("PROJECTS_FILE", "").strip() or os.path.join("mission-control", "projects.json")
PROJECTS_URL = os.environ.get("PROJECTS_URL", "").strip()
FETCH_TIMEOUT_SECONDS = env_float("FETCH_TIMEOUT_SECONDS", 5.0)
SITE_URL = env_url("SITE_URL", "http://localhost:5001")
AUTH_REDIRECT_URL = f"{SITE_URL}/auth/callback"


def required_env(name: str) -> str:
    value = os.environ.get(name, "").strip()
    if not value:
        raise RuntimeError(f"{name} is not configured")
    return value
