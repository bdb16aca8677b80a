"""
Shared pytest fixtures for the styles extractor tests.

Provides doubles for:
- the docker CLI (an in-memory set of containers and a fake instance filesystem)
- the HTTPS session talking to the instance
- a deterministic clock for polling loops
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
import requests

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if SRC_ROOT.is_dir():
    sys.path.insert(0, str(SRC_ROOT))

from server_styles.config import StylesConfig  # noqa: E402
from tests.fixtures import FakeRuntime, FakeSession  # noqa: E402


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def styles_config(tmp_path: Path) -> StylesConfig:
    return StylesConfig(
        version="28.0",
        output_root=tmp_path / "styles",
        poll_interval=1.0,
        max_poll_attempts=20,
    )


@pytest.fixture
def fake_runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def make_runtime() -> Callable[..., FakeRuntime]:
    return FakeRuntime


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def make_session() -> Callable[..., FakeSession]:
    return FakeSession


@pytest.fixture
def fake_http_response() -> Any:
    """Create a fake HTTP response with configurable attributes."""

    def _create(
        content: bytes = b"test content",
        status_code: int = 200,
        headers: dict[str, str] | None = None,
        url: str = "https://localhost:6123/status.php",
    ) -> MagicMock:
        response = MagicMock()
        response.content = content
        response.text = content.decode("utf-8")
        response.status_code = status_code
        response.headers = headers or {"Content-Length": str(len(content))}
        response.url = url
        response.ok = 200 <= status_code < 400
        response.raise_for_status = MagicMock()
        if status_code >= 400:
            response.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status_code}")
        return response

    return _create


@pytest.fixture
def deterministic_clock() -> Any:
    """A clock that advances only when explicitly told to."""

    class DeterministicClock:
        def __init__(self, start: float = 0.0) -> None:
            self.time = start
            self.sleep_calls: list[float] = []

        def __call__(self) -> float:
            return self.time

        def advance(self, seconds: float) -> None:
            self.time += seconds

        def sleep(self, seconds: float) -> None:
            self.sleep_calls.append(seconds)
            self.advance(seconds)

    return DeterministicClock()
