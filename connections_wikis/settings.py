"""Project settings loaded from pyproject.toml [tool.connections-wikis] section.

Recognised keys:
  [tool.connections-wikis]
  base-url          : Connections Wikis root, e.g. https://apps.example.com/wikis/
  timeout           : request timeout in seconds
  user-agent        : User-Agent header sent with every request
  delay-caching     : defer cache writes until navigation data is complete
  stub-type-allowed : hand stub navigation items back unresolved

All settings support environment variable overrides (CONNECTIONS_WIKIS_* prefix).
Credentials are only ever read from the environment.
"""

import importlib.resources
import os
from functools import cache
from pathlib import Path

import tomllib

ENV_PREFIX = "CONNECTIONS_WIKIS_"

DEFAULT_TIMEOUT = 30.0
DEFAULT_USER_AGENT = "Mozilla/5.0"


@cache
def _load_pyproject_settings() -> dict:
    """Load settings from pyproject.toml [tool.connections-wikis] section.

    Returns:
        Dictionary of settings from pyproject.toml, empty dict if not found.
    """
    try:
        files = importlib.resources.files("connections_wikis")
        pyproject_path = files.joinpath("..", "pyproject.toml")

        if not pyproject_path.is_file():  # type: ignore[union-attr]
            # Walk up to find pyproject.toml (for development)
            current = Path(__file__).resolve().parent
            while current != current.parent:
                candidate = current / "pyproject.toml"
                if candidate.exists():
                    pyproject_path = candidate
                    break
                current = current.parent
            else:
                return {}

        content = pyproject_path.read_text()  # type: ignore[union-attr]
        data = tomllib.loads(content)
        return data.get("tool", {}).get("connections-wikis", {})
    except Exception:
        return {}


def _env(name: str) -> str | None:
    return os.getenv(f"{ENV_PREFIX}{name}")


def _parse_bool(value: str | bool) -> bool:
    """Parse a boolean value from string or bool."""
    if isinstance(value, bool):
        return value
    return value.lower() in ("true", "1", "yes")


def get_base_url() -> str | None:
    """Get the Connections Wikis base URL.

    Priority: CONNECTIONS_WIKIS_BASE_URL env → [tool.connections-wikis].base-url → None.
    """
    if env := _env("BASE_URL"):
        return env
    return _load_pyproject_settings().get("base-url")


def get_timeout() -> float:
    """Get the HTTP request timeout in seconds.

    Priority: CONNECTIONS_WIKIS_TIMEOUT env → [tool.connections-wikis].timeout → 30.
    """
    if env := _env("TIMEOUT"):
        return float(env)
    if (val := _load_pyproject_settings().get("timeout")) is not None:
        return float(val)
    return DEFAULT_TIMEOUT


def get_user_agent() -> str:
    """Get the User-Agent header value."""
    if env := _env("USER_AGENT"):
        return env
    return _load_pyproject_settings().get("user-agent", DEFAULT_USER_AGENT)


def get_delay_caching() -> bool:
    """Get whether cache writes are deferred until a response is complete.

    Navigation feeds containing stub items are never cached, so stub
    resolution requires this to be on.

    Priority: CONNECTIONS_WIKIS_DELAY_CACHING env → [tool.connections-wikis].delay-caching → True.
    """
    if env := _env("DELAY_CACHING"):
        return _parse_bool(env)
    val = _load_pyproject_settings().get("delay-caching")
    if val is not None:
        return _parse_bool(val)
    return True


def get_stub_type_allowed() -> bool:
    """Get whether navigation feeds may be returned with unresolved stubs.

    Priority: CONNECTIONS_WIKIS_STUB_TYPE_ALLOWED env → [tool.connections-wikis].stub-type-allowed → False.
    """
    if env := _env("STUB_TYPE_ALLOWED"):
        return _parse_bool(env)
    val = _load_pyproject_settings().get("stub-type-allowed")
    if val is not None:
        return _parse_bool(val)
    return False


def get_credentials() -> dict[str, str]:
    """Read credentials from the environment.

    Returns a dict with ``token`` (OAuth bearer) when
    CONNECTIONS_WIKIS_TOKEN is set, otherwise ``username``/``password``
    when both are set, otherwise an empty dict.
    """
    if token := _env("TOKEN"):
        return {"token": token}
    username = _env("USERNAME")
    password = _env("PASSWORD")
    if username and password:
        return {"username": username, "password": password}
    return {}
