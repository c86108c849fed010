from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from tineye_services.exceptions import InvalidArgument

DEFAULT_TIMEOUT_SEC = 60.0


@dataclass(frozen=True, slots=True)
class ServiceConfig:
    """Connection settings for one TinEye Services API.

    Security notes:
    - password is kept out of repr so configs can be logged safely.

    """

    api_url: str
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT_SEC
    log_level: str = "WARNING"

    def __repr__(self) -> str:
        return (
            f"ServiceConfig(api_url={self.api_url!r}, username={self.username!r}, "
            f"password={'***' if self.password else None}, timeout={self.timeout!r}, "
            f"log_level={self.log_level!r})"
        )

    @classmethod
    def from_env(cls, prefix: str = "TINEYE") -> "ServiceConfig":
        """Build a config from environment variables.

        Reads <prefix>_API_URL, <prefix>_API_USERNAME, <prefix>_API_PASSWORD,
        <prefix>_HTTP_TIMEOUT and <prefix>_LOG_LEVEL.
        """

        api_url = os.environ.get(f"{prefix}_API_URL", "").strip()
        if not api_url:
            raise InvalidArgument(f"{prefix}_API_URL is not set")
        return cls(
            api_url=api_url,
            username=os.environ.get(f"{prefix}_API_USERNAME") or None,
            password=os.environ.get(f"{prefix}_API_PASSWORD") or None,
            timeout=_env_float(f"{prefix}_HTTP_TIMEOUT", DEFAULT_TIMEOUT_SEC),
            log_level=os.environ.get(f"{prefix}_LOG_LEVEL", "WARNING").strip().upper() or "WARNING",
        )


def _env_float(name: str, default: float) -> float:
    """Read a float environment variable, falling back to `default` on bad input."""

    raw = os.environ.get(name, "").strip()
    if not raw:
        return float(default)
    try:
        value = float(raw)
    except ValueError:
        return float(default)
    return value if value > 0 else float(default)
