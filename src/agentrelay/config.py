"""
Configuration for Agent Relay processes.

Values come from the environment first, then from a KEY=VALUE config.env
file. ``load_config()`` is called once at process start and the resulting
``Config`` is passed down explicitly.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from agentrelay.errors import ConfigError

DEFAULT_CONFIG_FILE = Path.home() / ".agentrelay" / "config.env"


def load_config_env(path: Path) -> dict[str, str]:
    """Parse a KEY=VALUE file. Missing file -> empty dict."""
    values: dict[str, str] = {}
    if not path.exists():
        return values
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        key, value = line.split("=", 1)
        values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def _parse_user_ids(raw: str) -> frozenset[int]:
    try:
        return frozenset(int(x) for x in raw.split(",") if x.strip())
    except ValueError as e:
        raise ConfigError(f"TELEGRAM_ALLOWED_USERS must be comma-separated integers: {raw!r}") from e


@dataclass(frozen=True)
class Config:
    secret: str = ""
    cloud_backend_url: str = ""
    store_backend: str = "file"
    redis_url: str = "redis://localhost:6379/0"
    data_dir: Path = field(default_factory=lambda: Path.home() / ".agentrelay")
    client_poll_interval: float = 1.0
    worker_poll_interval: float = 2.0
    response_ttl: float = 300.0
    wait_deadline: float = 30.0
    host: str = "0.0.0.0"
    port: int = 8080
    telegram_token: str = ""
    allowed_users: frozenset[int] = frozenset()
    llm_api_key: str = ""
    llm_base_url: str = "https://api.groq.com/openai/v1"
    llm_model: str = "llama-3.3-70b-versatile"
    files_base_dir: Path = field(default_factory=Path.home)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""
    rate_limit_per_minute: int = 30
    log_dir: Path | None = None

    @property
    def logs_path(self) -> Path:
        return self.log_dir or self.data_dir / "logs"

    def require_server(self) -> None:
        if not self.secret:
            raise ConfigError("RELAY_SECRET is required for the relay server")
        if self.store_backend not in ("file", "redis", "memory"):
            raise ConfigError(f"RELAY_STORE must be file, redis or memory, got {self.store_backend!r}")

    def require_worker(self) -> None:
        if not self.secret:
            raise ConfigError("RELAY_SECRET is required for the relay worker")
        if not self.cloud_backend_url:
            raise ConfigError("CLOUD_BACKEND_URL is required for the relay worker")

    def require_bot(self) -> None:
        if not self.telegram_token:
            raise ConfigError("TELEGRAM_BOT_TOKEN is required")
        if not self.allowed_users:
            raise ConfigError("TELEGRAM_ALLOWED_USERS is required")
        if not self.llm_api_key:
            raise ConfigError("LLM_API_KEY (or GROQ_API_KEY) is required to route messages")


def load_config(env: Mapping[str, str] | None = None, config_file: Path | None = None) -> Config:
    """Build a Config from ``env`` (default: os.environ) over ``config_file``.

    Raises ConfigError for values that do not parse.
    """
    if env is None:
        env = os.environ
    file_values = load_config_env(config_file or DEFAULT_CONFIG_FILE)

    def get(*names: str, default: str = "") -> str:
        for name in names:
            if env.get(name):
                return env[name]
        for name in names:
            if file_values.get(name):
                return file_values[name]
        return default

    def get_number(name: str, default: float, cast=float):
        raw = get(name)
        if not raw:
            return cast(default)
        try:
            value = cast(raw)
        except ValueError as e:
            raise ConfigError(f"{name} must be a number, got {raw!r}") from e
        if value <= 0:
            raise ConfigError(f"{name} must be positive, got {raw!r}")
        return value

    data_dir = Path(get("RELAY_DATA_DIR") or Path.home() / ".agentrelay").expanduser()
    log_dir = get("LOG_DIR")

    return Config(
        secret=get("RELAY_SECRET", "LOCAL_AGENT_SECRET"),
        cloud_backend_url=get("CLOUD_BACKEND_URL").rstrip("/"),
        store_backend=get("RELAY_STORE", default="file").lower(),
        redis_url=get("REDIS_URL", default="redis://localhost:6379/0"),
        data_dir=data_dir,
        client_poll_interval=get_number("RELAY_CLIENT_POLL_INTERVAL", 1.0),
        worker_poll_interval=get_number("POLLING_INTERVAL", 2.0),
        response_ttl=get_number("RELAY_RESPONSE_TTL", 300),
        wait_deadline=get_number("RELAY_WAIT_DEADLINE", 30),
        host=get("RELAY_HOST", default="0.0.0.0"),
        port=get_number("RELAY_PORT", 8080, int),
        telegram_token=get("TELEGRAM_BOT_TOKEN"),
        allowed_users=_parse_user_ids(get("TELEGRAM_ALLOWED_USERS")),
        llm_api_key=get("LLM_API_KEY", "GROQ_API_KEY"),
        llm_base_url=get("LLM_BASE_URL", default="https://api.groq.com/openai/v1").rstrip("/"),
        llm_model=get("LLM_MODEL", default="llama-3.3-70b-versatile"),
        files_base_dir=Path(get("FILES_BASE_DIR") or Path.home()).expanduser(),
        smtp_host=get("SMTP_HOST"),
        smtp_port=get_number("SMTP_PORT", 587, int),
        smtp_user=get("SMTP_USER"),
        smtp_password=get("SMTP_PASSWORD"),
        smtp_from=get("SMTP_FROM"),
        rate_limit_per_minute=get_number("RATE_LIMIT_PER_MINUTE", 30, int),
        log_dir=Path(log_dir).expanduser() if log_dir else None,
    )
