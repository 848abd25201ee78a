"""Environment configuration for the Assistant MCP server.

Values come from the process environment. A ``.env`` file in the working
directory is loaded first (without overriding variables already set).
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger("assistant-mcp")

DEFAULT_PORT = 8080
DEFAULT_SENDER = "onboarding@resend.dev"
DEFAULT_DOCTOR_ID = "default-doc"
DEFAULT_UPSTREAM_TIMEOUT = 30.0


def _get(env: Mapping[str, str], *names: str) -> Optional[str]:
    """Return the first non-blank value among ``names``, stripped."""
    for name in names:
        value = env.get(name)
        if value and value.strip():
            return value.strip()
    return None


def _base_url(env: Mapping[str, str], *names: str) -> Optional[str]:
    value = _get(env, *names)
    return value.rstrip("/") if value else None


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    resend_api_key: Optional[str] = None
    email_from: str = DEFAULT_SENDER
    search_api_url: Optional[str] = None
    appointment_service_url: Optional[str] = None
    doctor_id: str = DEFAULT_DOCTOR_ID
    upstream_timeout: float = DEFAULT_UPSTREAM_TIMEOUT
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``env`` (defaults to ``os.environ``).

        Raises:
            ValueError: If PORT or UPSTREAM_TIMEOUT is not numeric.
        """
        if env is None:
            env = os.environ

        port = _get(env, "PORT")
        timeout = _get(env, "UPSTREAM_TIMEOUT")

        settings = cls(
            host=_get(env, "HOST") or "0.0.0.0",
            port=int(port) if port else DEFAULT_PORT,
            resend_api_key=_get(env, "RESEND_API_KEY"),
            email_from=_get(env, "EMAIL_FROM") or DEFAULT_SENDER,
            search_api_url=_base_url(env, "EMAIL_SEARCH_API_URL", "STATIC_SEARCH_API_URL"),
            appointment_service_url=_base_url(env, "APPOINTMENT_SERVICE_URL"),
            doctor_id=_get(env, "APPOINTMENT_DOCTOR_ID") or DEFAULT_DOCTOR_ID,
            upstream_timeout=float(timeout) if timeout else DEFAULT_UPSTREAM_TIMEOUT,
            log_level=(_get(env, "LOG_LEVEL") or "INFO").upper(),
        )

        for label, value in (
            ("RESEND_API_KEY", settings.resend_api_key),
            ("EMAIL_SEARCH_API_URL", settings.search_api_url),
            ("APPOINTMENT_SERVICE_URL", settings.appointment_service_url),
        ):
            if not value:
                logger.warning(f"{label} not set, the matching tool will report a configuration error")
        return settings

    def upstream_status(self) -> dict[str, str]:
        """Report which upstream services are configured."""
        def _status(value: Optional[str]) -> str:
            return "configured" if value else "not_configured"

        return {
            "email": _status(self.resend_api_key),
            "search": _status(self.search_api_url),
            "appointments": _status(self.appointment_service_url),
        }


def load_settings(dotenv_path: Optional[str] = None) -> Settings:
    """Load ``.env`` (if present) into the environment, then read settings."""
    if load_dotenv(dotenv_path or find_dotenv(usecwd=True)):
        logger.info("Loaded environment from .env file")
    return Settings.from_env()
