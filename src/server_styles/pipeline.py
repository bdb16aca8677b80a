"""Three-phase extraction run: prepare the instance, copy styles, remove the instance."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import requests

from server_styles.assets import AssetFetcher, ExtractionResult, OutputTree
from server_styles.config import StylesConfig
from server_styles.exceptions import (
    AssetExtractionError,
    InstanceProvisioningError,
    MissingVersionArgument,
    StylesError,
)
from server_styles.instance import InstanceHandle, InstanceManager
from server_styles.logging_config import LogContext
from server_styles.network_utils import create_instance_session
from server_styles.result import Err, Ok, Result
from server_styles.reuse import reconcile
from server_styles.runtime import DockerRuntime
from server_styles.utils.logging import log_event

logger = logging.getLogger(__name__)

PHASE_PREPARE = "[1/3] Preparing instance. It might take a while..."
PHASE_COPY = "[2/3] Copying styles..."
PHASE_TEARDOWN = "[3/3] Removing instance..."


class StylesPipeline:
    def __init__(
        self,
        config: StylesConfig,
        *,
        runtime: DockerRuntime | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.runtime = runtime or DockerRuntime(config.docker_bin)
        self.session = session or create_instance_session(config)
        self.instance = InstanceManager(config, self.runtime, self.session, sleep=sleep)
        self.fetcher = AssetFetcher(config, self.runtime, self.session)
        self.tree = OutputTree(config.output_dir, config.template_dir)

    def run(self) -> Result[ExtractionResult]:
        with LogContext(version=self.config.version, instance=self.instance.handle.name):
            try:
                logger.info(PHASE_PREPARE)
                try:
                    handle = self.instance.ensure_ready()
                except InstanceProvisioningError as exc:
                    return self._fail(exc)

                logger.info(PHASE_COPY)
                return self._copy_phase(handle)
            finally:
                logger.info(PHASE_TEARDOWN)
                self.instance.teardown()

    def _copy_phase(self, handle: InstanceHandle) -> Result[ExtractionResult]:
        try:
            self.tree.create()
            extraction = self.fetcher.extract_all(handle, self.tree)
            extraction.reuse_toml = reconcile(extraction.manifest_path, self.tree.root)
        except StylesError as exc:
            return self._fail(exc)
        except Exception as exc:
            # Any failure here leaves a partial tree behind.
            error = AssetExtractionError(
                f"Unexpected failure while copying styles: {exc}",
                context={"exception": type(exc).__name__},
            )
            error.__cause__ = exc
            return self._fail(error)

        log_event(
            logger,
            "Styles extracted",
            output_dir=str(extraction.output_dir),
            reuse_toml=str(extraction.reuse_toml) if extraction.reuse_toml else None,
        )
        return Ok(
            extraction,
            output_dir=str(extraction.output_dir),
            reuse_toml=str(extraction.reuse_toml) if extraction.reuse_toml else None,
        )

    def _fail(self, exc: StylesError) -> Result[ExtractionResult]:
        logger.error("Something went wrong: %s", exc.message, exc_info=exc)
        log_event(logger, "Failure details", level=logging.ERROR, **exc.as_log_fields())
        try:
            self.tree.remove()
        except OSError as cleanup_exc:
            logger.warning("Failed to remove %s: %s", self.tree.root, cleanup_exc)
        return Err(exc.code, exc.message, **exc.context)


def run_pipeline(
    version: str | None,
    *,
    config: StylesConfig | None = None,
    runtime: DockerRuntime | None = None,
    session: requests.Session | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Result[ExtractionResult]:
    """Validate the version and run the full extraction.

    Raises:
        MissingVersionArgument: ``version`` is empty; nothing has been started.
    """
    if not version or not version.strip():
        raise MissingVersionArgument("You must provide a version/branch as an argument.")
    version = version.strip()
    config = config or StylesConfig.from_env(version)
    return StylesPipeline(config, runtime=runtime, session=session, sleep=sleep).run()
