from __future__ import annotations

import logging
import time
import warnings
from collections.abc import Callable
from typing import Any

import requests
from urllib3.exceptions import InsecureRequestWarning

from server_styles.__version__ import __version__ as VERSION
from server_styles.config import StylesConfig
from server_styles.exceptions import ReadinessTimeoutError

logger = logging.getLogger(__name__)


def build_user_agent(name: str = "server-styles", version: str = VERSION) -> str:
    return f"{name}/{version}"


class InstanceSession(requests.Session):
    """Session scoped to the ephemeral instance.

    Certificate verification is configured on this session only, and urllib3's
    insecure-request warning is silenced only around its own requests.
    """

    def request(self, method: str | bytes, url: str | bytes, *args: Any, **kwargs: Any) -> requests.Response:
        if self.verify:
            return super().request(method, url, *args, **kwargs)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", InsecureRequestWarning)
            return super().request(method, url, *args, **kwargs)


def create_instance_session(config: StylesConfig) -> requests.Session:
    """Create a session for talking to the self-signed ephemeral instance."""
    session = InstanceSession()
    session.verify = config.verify_tls
    session.headers["User-Agent"] = build_user_agent()
    if config.username and config.password:
        session.auth = (config.username, config.password.reveal())
    return session


def probe_ok(session: requests.Session, url: str, *, timeout: float = 10.0) -> bool:
    """Return True when ``url`` answers with a 2xx status."""
    try:
        response = session.get(url, timeout=timeout)
    except requests.RequestException as exc:
        logger.debug("Probe of %s failed: %s", url, exc)
        return False
    try:
        return 200 <= response.status_code < 300
    finally:
        response.close()


def fetch_text(session: requests.Session, url: str, *, timeout: float = 30.0) -> str:
    """GET ``url`` and return the decoded body.

    Raises:
        requests.HTTPError: On a non-2xx status.
        requests.RequestException: On transport failures.
    """
    response = session.get(url, timeout=timeout)
    response.raise_for_status()
    response.encoding = response.encoding or "utf-8"
    return response.text


def poll_until(
    check: Callable[[], bool],
    *,
    interval: float = 1.0,
    max_attempts: int | None = None,
    sleep: Callable[[float], None] = time.sleep,
    on_wait: Callable[[int], None] | None = None,
    description: str = "condition",
) -> int:
    """Call ``check`` every ``interval`` seconds until it returns True.

    Args:
        check: Probe returning True once the awaited state is reached
        interval: Fixed delay between probes (seconds)
        max_attempts: Maximum number of probes; None polls forever
        sleep: Sleep function (injectable for tests)
        on_wait: Optional callback called after each failed probe with the attempt number
        description: Used in the timeout message

    Returns:
        The number of probes performed (the successful one included)

    Raises:
        ReadinessTimeoutError: If ``max_attempts`` probes all failed
    """
    attempt = 0
    while True:
        attempt += 1
        if check():
            return attempt
        if max_attempts is not None and attempt >= max_attempts:
            raise ReadinessTimeoutError(
                f"Timed out waiting for {description} after {attempt} attempts",
                attempts=attempt,
            )
        if on_wait:
            on_wait(attempt)
        sleep(interval)
