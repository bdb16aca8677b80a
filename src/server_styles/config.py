from __future__ import annotations

import dataclasses
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from server_styles.exceptions import ConfigValidationError
from server_styles.secrets import SecretStr

ENV_PREFIX = "SERVER_STYLES_"

DEFAULT_IMAGE = "ghcr.io/szaimen/nextcloud-easy-test:latest"
DEFAULT_NAME_PREFIX = "nextcloud-server-styles-"
DEFAULT_PORT = 6123
DEFAULT_OUTPUT_ROOT = "./styles"
DEFAULT_INSTANCE_ROOT = "/var/www/nextcloud"
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_MAX_POLL_ATTEMPTS = 600
DEFAULT_REQUEST_TIMEOUT = 30.0
# nextcloud-easy-test provisions this admin account on first boot
DEFAULT_USERNAME = "admin"
DEFAULT_PASSWORD = "nextcloud"
TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

_SEPARATOR_RE = re.compile(r"[^A-Za-z0-9]+")


def instance_name(version: str, prefix: str = DEFAULT_NAME_PREFIX) -> str:
    """Derive the container name for a version (``28.0`` -> ``...-28_0``)."""
    return f"{prefix}{_SEPARATOR_RE.sub('_', version)}"


@dataclasses.dataclass(frozen=True)
class StylesConfig:
    version: str
    image: str = DEFAULT_IMAGE
    name_prefix: str = DEFAULT_NAME_PREFIX
    host: str = "localhost"
    port: int = DEFAULT_PORT
    output_root: Path = Path(DEFAULT_OUTPUT_ROOT)
    template_dir: Path = TEMPLATE_DIR
    instance_root: str = DEFAULT_INSTANCE_ROOT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_poll_attempts: int | None = DEFAULT_MAX_POLL_ATTEMPTS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    verify_tls: bool = False
    username: str = DEFAULT_USERNAME
    password: SecretStr = dataclasses.field(default_factory=lambda: SecretStr(DEFAULT_PASSWORD))
    docker_bin: str = "docker"

    @property
    def instance_name(self) -> str:
        return instance_name(self.version, self.name_prefix)

    @property
    def base_url(self) -> str:
        return f"https://{self.host}:{self.port}"

    @property
    def status_url(self) -> str:
        return f"{self.base_url}/status.php"

    @property
    def output_dir(self) -> Path:
        return Path(self.output_root) / self.version

    @classmethod
    def from_env(cls, version: str, environ: Mapping[str, str] | None = None, **overrides: Any) -> StylesConfig:
        """Build a config from ``SERVER_STYLES_*`` environment variables.

        Explicit keyword overrides win over the environment.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        def _get(name: str) -> str | None:
            raw = env.get(f"{ENV_PREFIX}{name}")
            if raw is None or not raw.strip():
                return None
            return raw.strip()

        image = _get("IMAGE")
        if image is not None:
            values["image"] = image
        port = _get("PORT")
        if port is not None:
            values["port"] = _coerce(port, int, "PORT")
        output_root = _get("OUTPUT_ROOT")
        if output_root is not None:
            values["output_root"] = Path(output_root).expanduser()
        interval = _get("POLL_INTERVAL")
        if interval is not None:
            values["poll_interval"] = _coerce(interval, float, "POLL_INTERVAL")
        attempts = _get("MAX_POLL_ATTEMPTS")
        if attempts is not None:
            parsed = _coerce(attempts, int, "MAX_POLL_ATTEMPTS")
            values["max_poll_attempts"] = parsed if parsed > 0 else None
        username = _get("USERNAME")
        if username is not None:
            values["username"] = username
        password = _get("PASSWORD")
        if password is not None:
            values["password"] = SecretStr(password)
        docker_bin = _get("DOCKER")
        if docker_bin is not None:
            values["docker_bin"] = docker_bin

        values.update(overrides)
        return cls(version=version, **values)


def _coerce(raw: str, kind: type, name: str) -> Any:
    try:
        return kind(raw)
    except ValueError as exc:
        raise ConfigValidationError(
            f"Invalid value for {ENV_PREFIX}{name}: {raw!r}",
            context={"variable": f"{ENV_PREFIX}{name}", "value": raw},
        ) from exc
