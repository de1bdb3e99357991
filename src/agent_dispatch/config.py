# src/agent_dispatch/config.py

"""AGENT_DISPATCH_* environment settings (a local .env is read first).

Only the CLI calls get_settings(); the pool, supervisors and workers are handed
the Settings object. Unparseable values fall back to their defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "AGENT_DISPATCH"

DEFAULT_BOOTSTRAP_PHRASE = "Enter your programming task or question:"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_optional_path(name: str) -> Path | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path
    console_enabled: bool

    # ---- Worker pool ----
    worker_count: int
    repo_path: Path
    branch_prefix: str
    strict_validation: bool

    # ---- Agent program ----
    agent_command: str
    agent_args: list[str]
    wrapper_script: Path | None
    wrapper_interpreter: str
    bootstrap_phrase: str

    # ---- Supervisor timings (seconds) ----
    confirm_step_delay: float
    confirm_rescan_interval: float
    write_retry_delay: float
    task_timeout: float

    @staticmethod
    def from_env() -> "Settings":
        # GIT_REPO_PATH is accepted as a shorter alias.
        repo_default = _env_path("GIT_REPO_PATH", Path.cwd())

        return Settings(
            app_name=_env(_k("APP_NAME"), "agent-dispatch"),
            log_level=_env(_k("LOG_LEVEL"), "INFO"),
            data_dir=_env_path(_k("DATA_DIR"), Path(".local/agent_dispatch")),
            console_enabled=_env_bool(_k("CONSOLE_ENABLED"), True),
            worker_count=max(1, _env_int(_k("WORKER_COUNT"), 3)),
            repo_path=_env_path(_k("REPO_PATH"), repo_default),
            branch_prefix=_env(_k("BRANCH_PREFIX"), "task-"),
            strict_validation=_env_bool(_k("STRICT_VALIDATION"), False),
            agent_command=_env(_k("AGENT_COMMAND"), "claude"),
            agent_args=_env_list(_k("AGENT_ARGS"), ["ask"]),
            wrapper_script=_env_optional_path(_k("WRAPPER_SCRIPT")),
            wrapper_interpreter=_env(_k("WRAPPER_INTERPRETER"), "node"),
            bootstrap_phrase=_env(_k("BOOTSTRAP_PHRASE"), DEFAULT_BOOTSTRAP_PHRASE),
            confirm_step_delay=max(0.0, _env_float(_k("CONFIRM_STEP_DELAY_SECONDS"), 0.3)),
            confirm_rescan_interval=max(
                0.0, _env_float(_k("CONFIRM_RESCAN_INTERVAL_SECONDS"), 2.0)
            ),
            write_retry_delay=max(0.0, _env_float(_k("WRITE_RETRY_DELAY_SECONDS"), 0.1)),
            task_timeout=max(0.0, _env_float(_k("TASK_TIMEOUT_SECONDS"), 0.0)),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Load settings once (reading a local .env first) and reuse them."""
    global _settings
    if _settings is None:
        load_dotenv(override=False)
        _settings = Settings.from_env()
    return _settings
