"""
Central configuration — reads from the environment, with a .env file loaded first.

  OPENAI_API_KEY   required
  LISTEN_ADDR      host:port to bind, default ":8080" (empty host = all interfaces)
  OPENAI_MODEL     vision model, default "gpt-4o"
  OPENAI_BASE_URL  completion API root, default "https://api.openai.com"
  LOG_LEVEL        default "INFO"
"""
from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

DEFAULT_LISTEN_ADDR = ":8080"
DEFAULT_MODEL       = "gpt-4o"
DEFAULT_BASE_URL    = "https://api.openai.com"
DEFAULT_LOG_LEVEL   = "INFO"


class ConfigError(RuntimeError):
    """Required setting missing or unparseable."""


@dataclass(frozen=True)
class Settings:
    api_key:     str
    listen_addr: str = DEFAULT_LISTEN_ADDR
    model:       str = DEFAULT_MODEL
    base_url:    str = DEFAULT_BASE_URL
    log_level:   str = DEFAULT_LOG_LEVEL

    @property
    def host(self) -> str:
        return split_listen_addr(self.listen_addr)[0]

    @property
    def port(self) -> int:
        return split_listen_addr(self.listen_addr)[1]


def _env(name: str, default: str) -> str:
    # Empty string counts as unset
    return os.getenv(name, "").strip() or default


def load_settings() -> Settings:
    api_key = os.getenv("OPENAI_API_KEY", "").strip()
    if not api_key:
        raise ConfigError("OPENAI_API_KEY environment variable is required")

    settings = Settings(
        api_key=api_key,
        listen_addr=_env("LISTEN_ADDR", DEFAULT_LISTEN_ADDR),
        model=_env("OPENAI_MODEL", DEFAULT_MODEL),
        base_url=_env("OPENAI_BASE_URL", DEFAULT_BASE_URL),
        log_level=_env("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
    )
    split_listen_addr(settings.listen_addr)  # fail fast on a bad address
    return settings


def split_listen_addr(addr: str) -> tuple[str, int]:
    """
    ":8080" → ("0.0.0.0", 8080), "127.0.0.1:9000" → ("127.0.0.1", 9000).
    Raises ConfigError if there is no numeric port.
    """
    host, sep, port = addr.rpartition(":")
    if not sep or not port.isdigit():
        raise ConfigError(f"invalid LISTEN_ADDR {addr!r} — expected host:port")
    port_num = int(port)
    if not 0 < port_num < 65536:
        raise ConfigError(f"invalid LISTEN_ADDR {addr!r} — port out of range")
    return host or "0.0.0.0", port_num
