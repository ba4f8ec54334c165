from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

CREDENTIAL_VARS = ("SPOTIPY_CLIENT_ID", "SPOTIPY_CLIENT_SECRET")


def load_local_env_file(env_path: str = ".env") -> None:
    """Load key=value pairs from a local .env file into process env.

    Existing environment variables are preserved and not overwritten.
    """

    path = Path(env_path)
    if not path.exists():
        return

    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")

        if key and key not in os.environ:
            os.environ[key] = value


def env_int(name: str, fallback: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return fallback
    try:
        return int(raw)
    except ValueError:
        return fallback


def env_float(name: str, fallback: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return fallback
    try:
        return float(raw)
    except ValueError:
        return fallback


@dataclass(slots=True)
class Settings:
    client_id: str = ""
    client_secret: str = ""
    market: str = "US"
    # Per catalog call, in seconds.
    request_timeout: float = 5.0
    # Whole resolution call, in seconds.
    deadline: float = 8.0
    per_strategy_limit: int = 10
    result_count: int = 5
    log_level: str = "INFO"

    def validate_credentials(self) -> None:
        missing = [
            name
            for name, value in zip(CREDENTIAL_VARS, (self.client_id, self.client_secret))
            if not value
        ]
        if missing:
            missing_list = ", ".join(missing)
            raise ValueError(
                f"Missing Spotify credentials: {missing_list}. "
                "Set them in environment variables or local .env file."
            )


def load_settings() -> Settings:
    return Settings(
        client_id=os.getenv("SPOTIPY_CLIENT_ID", ""),
        client_secret=os.getenv("SPOTIPY_CLIENT_SECRET", ""),
        market=os.getenv("CORRIENTE_MARKET") or "US",
        request_timeout=env_float("CORRIENTE_REQUEST_TIMEOUT", 5.0),
        deadline=env_float("CORRIENTE_DEADLINE", 8.0),
        per_strategy_limit=env_int("CORRIENTE_PER_STRATEGY_LIMIT", 10),
        result_count=env_int("CORRIENTE_RESULT_COUNT", 5),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
