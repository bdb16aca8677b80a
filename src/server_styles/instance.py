"""Lifecycle of the ephemeral server container.

States move only forward, ``ABSENT -> CREATED -> RUNNING -> READY``, and any
state goes back to ``ABSENT`` on teardown. ``ensure_ready`` is idempotent: a
second call for the same version finds the existing container and never
creates another one.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Callable
from enum import Enum

import requests

from server_styles.config import StylesConfig
from server_styles.exceptions import InstanceProvisioningError, RuntimeCommandError
from server_styles.network_utils import poll_until, probe_ok
from server_styles.runtime import DockerRuntime
from server_styles.utils.logging import log_event

logger = logging.getLogger(__name__)


class InstanceState(str, Enum):
    ABSENT = "absent"
    CREATED = "created"
    RUNNING = "running"
    READY = "ready"


@dataclasses.dataclass(frozen=True)
class InstanceHandle:
    name: str
    version: str


class InstanceManager:
    def __init__(
        self,
        config: StylesConfig,
        runtime: DockerRuntime,
        session: requests.Session,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.runtime = runtime
        self.session = session
        self._sleep = sleep
        self.handle = InstanceHandle(name=config.instance_name, version=config.version)

    def is_ready(self) -> bool:
        return probe_ok(self.session, self.config.status_url, timeout=self.config.request_timeout)

    def state(self) -> InstanceState:
        if self.runtime.status(self.handle.name) is None:
            return InstanceState.ABSENT
        if not self.runtime.is_running(self.handle.name):
            return InstanceState.CREATED
        if self.is_ready():
            return InstanceState.READY
        return InstanceState.RUNNING

    def ensure_ready(self) -> InstanceHandle:
        """Create or start the container as needed and block until it serves requests.

        Raises:
            InstanceProvisioningError: A container command failed.
            ReadinessTimeoutError: The container never became ready within
                ``max_poll_attempts`` polls.
        """
        name = self.handle.name
        try:
            status = self.runtime.status(name)
            if status is None:
                log_event(logger, "Creating instance", instance=name, image=self.config.image)
                self.runtime.create(
                    name,
                    version=self.config.version,
                    port=self.config.port,
                    image=self.config.image,
                )
            elif not self.runtime.is_running(name):
                log_event(logger, "Starting existing instance", instance=name, status=status)
                self.runtime.start(name)
            else:
                logger.debug("Instance %s is already running", name)

            poll_until(
                lambda: self.runtime.is_running(name),
                interval=self.config.poll_interval,
                max_attempts=self.config.max_poll_attempts,
                sleep=self._sleep,
                description=f"container {name} to start",
            )
        except RuntimeCommandError as exc:
            raise InstanceProvisioningError(
                f"Failed to provision instance {name}: {exc.message}",
                context={"instance": name, **exc.context},
            ) from exc

        attempts = poll_until(
            self.is_ready,
            interval=self.config.poll_interval,
            max_attempts=self.config.max_poll_attempts,
            sleep=self._sleep,
            on_wait=self._log_wait,
            description=self.config.status_url,
        )
        log_event(logger, "Instance is ready", instance=name, attempts=attempts)
        return self.handle

    def _log_wait(self, attempt: int) -> None:
        if attempt == 1 or attempt % 30 == 0:
            logger.info("Waiting for %s to become ready (attempt %d)", self.config.status_url, attempt)

    def teardown(self) -> None:
        """Force-remove the container; failures are logged, never raised."""
        try:
            self.runtime.remove(self.handle.name)
        except RuntimeCommandError as exc:
            logger.warning("Failed to remove instance %s: %s", self.handle.name, exc.message)
            return
        logger.info("Removed instance %s", self.handle.name)
