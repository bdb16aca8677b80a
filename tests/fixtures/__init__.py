"""Doubles and sample data shared by the styles extractor tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import requests

from server_styles.exceptions import RuntimeCommandError

INSTANCE_ROOT = "/var/www/nextcloud"
BASE_URL = "https://localhost:6123"

SAMPLE_DEP5 = """\
Format: https://www.debian.org/doc/packaging-manuals/copyright-format/1.0/
Upstream-Name: nextcloud
Upstream-Contact: Nextcloud GmbH <https://nextcloud.com/impressum/>
Source: https://github.com/nextcloud/server

Files: core/img/x.png
Copyright: 2016 Nextcloud GmbH and Nextcloud contributors
License: AGPL-3.0-or-later

Files: apps/random/y.js
Copyright: 2020 Someone Else
License: MIT

Files: core/css/server.css
Copyright: 2018 Nextcloud GmbH and Nextcloud contributors
License: AGPL-3.0-or-later
"""

THEMED_CSS = (
    ":root{--image-background:url(/apps/theming/img/background/kamil-porembinski-clouds.jpg);}"
    ".logo{background-image:url(/apps/theming/img/logo.svg)}"
)


def default_instance_files() -> dict[str, str]:
    return {
        f"{INSTANCE_ROOT}/core/img/logo/logo.svg": "<svg/>",
        f"{INSTANCE_ROOT}/core/img/actions/close.svg": "<svg/>",
        f"{INSTANCE_ROOT}/core/css/server.css": "body{margin:0}",
        f"{INSTANCE_ROOT}/core/css/apps.css": "#content{display:flex}",
        f"{INSTANCE_ROOT}/dist/icons.css": ".icon-close{background-image:url(../img/close.svg)}",
        f"{INSTANCE_ROOT}/apps/theming/img/background/kamil-porembinski-clouds.jpg": "jpeg",
        f"{INSTANCE_ROOT}/.reuse/dep5": SAMPLE_DEP5,
    }


def default_routes() -> dict[str, Any]:
    return {
        f"{BASE_URL}/apps/theming/css/default.css": THEMED_CSS,
        f"{BASE_URL}/index.php/apps/theming/theme/light.css?plain=0&v=1": "[data-theme-light]{--color-main-text:#222}",
        f"{BASE_URL}/index.php/apps/theming/theme/light.css?plain=1&v=2": ":root{--color-main-text:#222}",
        f"{BASE_URL}/index.php/apps/theming/theme/dark.css?plain=0&v=1": "[data-theme-dark]{--color-main-text:#eee}",
        f"{BASE_URL}/index.php/apps/theming/theme/dark.css?plain=1&v=2": ":root{--color-main-text:#eee}",
    }


# =============================================================================
# Container runtime double
# =============================================================================


def _write(target: Path, body: str | bytes) -> None:
    if isinstance(body, bytes):
        target.write_bytes(body)
    else:
        target.write_text(body, encoding="utf-8")


class FakeRuntime:
    """In-memory stand-in for DockerRuntime.

    ``containers`` maps a container name to its docker status string. ``files``
    is the filesystem of every container, keyed by absolute path.
    """

    def __init__(
        self,
        files: dict[str, str | bytes] | None = None,
        *,
        containers: dict[str, str] | None = None,
        fail_copy: set[str] | None = None,
        fail_create: bool = False,
        fail_remove: bool = False,
        copy_hook: Callable[[str], None] | None = None,
    ) -> None:
        self.files = dict(default_instance_files() if files is None else files)
        self.containers = dict(containers or {})
        self.fail_copy = set(fail_copy or ())
        self.fail_create = fail_create
        self.fail_remove = fail_remove
        self.copy_hook = copy_hook
        self.calls: list[tuple[Any, ...]] = []

    def _error(self, *cmd: str) -> RuntimeCommandError:
        return RuntimeCommandError("docker failed", cmd=["docker", *cmd], returncode=1, output="Error")

    def status(self, name: str) -> str | None:
        self.calls.append(("status", name))
        return self.containers.get(name)

    def is_running(self, name: str) -> bool:
        self.calls.append(("is_running", name))
        return self.containers.get(name) == "running"

    def create(self, name: str, *, version: str, port: int, image: str) -> None:
        self.calls.append(("create", name, version, port, image))
        if self.fail_create:
            raise self._error("run", name)
        self.containers[name] = "running"

    def start(self, name: str) -> None:
        self.calls.append(("start", name))
        self.containers[name] = "running"

    def remove(self, name: str) -> None:
        self.calls.append(("remove", name))
        if self.fail_remove:
            raise self._error("rm", "--force", name)
        self.containers.pop(name, None)

    def copy_from(self, name: str, source: str, destination: Path) -> None:
        self.calls.append(("copy_from", name, source, destination))
        if self.copy_hook:
            self.copy_hook(source)
        if source in self.fail_copy:
            raise self._error("cp", f"{name}:{source}", str(destination))
        if source.endswith("/"):
            matched = {path: body for path, body in self.files.items() if path.startswith(source)}
            if not matched:
                raise self._error("cp", f"{name}:{source}", str(destination))
            base = source.rstrip("/").rsplit("/", 1)[-1]
            for path, body in matched.items():
                target = Path(destination) / base / path[len(source):]
                target.parent.mkdir(parents=True, exist_ok=True)
                _write(target, body)
            return
        if source not in self.files:
            raise self._error("cp", f"{name}:{source}", str(destination))
        target = Path(destination)
        if target.is_dir():
            target = target / source.rsplit("/", 1)[-1]
        target.parent.mkdir(parents=True, exist_ok=True)
        _write(target, self.files[source])

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)


# =============================================================================
# HTTP doubles
# =============================================================================


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "", url: str = "") -> None:
        self.status_code = status_code
        self.text = text
        self.url = url
        self.encoding: str | None = "utf-8"
        self.closed = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error for url: {self.url}", response=self)

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """Answers GETs from ``routes``; ``status.php`` consumes ``status_outcomes`` in order.

    A status outcome is either an HTTP status code or an exception instance to
    raise. Once the outcomes are exhausted the status endpoint answers 200.
    """

    def __init__(self, routes: dict[str, Any] | None = None, status_outcomes: list[Any] | None = None) -> None:
        self.routes = dict(default_routes() if routes is None else routes)
        self.status_outcomes = list(status_outcomes or [])
        self.calls: list[str] = []

    @property
    def status_calls(self) -> int:
        return sum(1 for url in self.calls if url.endswith("/status.php"))

    def get(self, url: str, timeout: Any = None, **kwargs: Any) -> FakeResponse:
        self.calls.append(url)
        if url.endswith("/status.php"):
            outcome = self.status_outcomes.pop(0) if self.status_outcomes else 200
            if isinstance(outcome, Exception):
                raise outcome
            return FakeResponse(outcome, '{"installed":true}', url)
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(404, "Not Found", url)
        if isinstance(route, Exception):
            raise route
        return FakeResponse(200, route, url)

