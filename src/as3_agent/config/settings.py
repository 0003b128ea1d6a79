"""Agent settings loaded from YAML configuration."""
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from ..dispatch.errors import AgentError
from ..dispatch.retry import RetryTimeouts

logger = logging.getLogger(__name__)


class SettingsError(AgentError):
    """The agent configuration file is missing or invalid."""
    pass


@dataclass
class AgentParams:
    """Everything the agent needs to reach BIG-IP and run the dispatcher."""
    bigip_url: str
    username: str
    password: Optional[str] = None
    password_env: str = "BIGIP_PASSWORD"
    trusted_certs: Optional[str] = None
    ssl_insecure: bool = False
    timeout: float = 60
    # Dispatcher
    post_delay: float = 0
    as3_validation: bool = True
    schema: Optional[str] = None  # URL or path; derived from AS3 version if unset
    retry_timeouts: RetryTimeouts = field(default_factory=RetryTimeouts)
    # Diagnostics
    log_response: bool = False
    user_agent: str = "as3-agent"

    def get_password(self) -> str:
        """Get password from config or environment variable."""
        if self.password:
            return self.password
        return os.environ.get(self.password_env, "")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AgentParams":
        """Build params from a parsed config mapping.

        Raises:
            SettingsError: On unknown keys, missing required keys or bad types
        """
        data = dict(data)
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise SettingsError(f"Unknown settings: {', '.join(unknown)}")

        for required in ("bigip_url", "username"):
            if not data.get(required):
                raise SettingsError(f"Missing required setting: {required}")

        retry_config = data.pop("retry_timeouts", None) or {}
        try:
            retry_timeouts = RetryTimeouts(**{k: float(v) for k, v in retry_config.items()})
            params = cls(retry_timeouts=retry_timeouts, **data)
            params.timeout = float(params.timeout)
            params.post_delay = float(params.post_delay)
        except (TypeError, ValueError, AttributeError) as e:
            raise SettingsError(f"Invalid settings: {e}")

        if params.post_delay < 0:
            raise SettingsError("post_delay must not be negative")
        return params


def find_config() -> str:
    """Find the agent config file."""
    env_path = os.environ.get("AS3_AGENT_CONFIG")
    if env_path:
        return env_path

    search_paths = [
        Path.cwd() / "configs" / "as3-agent.yaml",
        Path.cwd() / "as3-agent.yaml",
        Path.home() / ".config" / "as3-agent" / "as3-agent.yaml",
        Path("/etc/as3-agent/as3-agent.yaml"),
    ]

    for path in search_paths:
        if path.exists():
            return str(path)

    raise SettingsError(
        "Could not find as3-agent.yaml. Create one in ./configs/as3-agent.yaml"
    )


def load_settings(config_path: Optional[str] = None) -> AgentParams:
    """Load AgentParams from YAML.

    The file may hold the settings at top level or under an ``agent`` key.
    """
    path = config_path or find_config()
    try:
        with open(path) as f:
            config = yaml.safe_load(f) or {}
    except OSError as e:
        raise SettingsError(f"Cannot read {path}: {e}")
    except yaml.YAMLError as e:
        raise SettingsError(f"Invalid YAML in {path}: {e}")

    if not isinstance(config, dict):
        raise SettingsError(f"{path} must contain a mapping")

    section = config.get("agent", config)
    logger.debug(f"Loaded agent settings from {path}")
    return AgentParams.from_dict(section)
