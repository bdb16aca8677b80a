from __future__ import annotations

import dataclasses
import logging
import shutil
from pathlib import Path

import requests

from server_styles.config import StylesConfig
from server_styles.exceptions import AssetExtractionError, RuntimeCommandError
from server_styles.fetch_spec import (
    DEFAULT_FETCH_SPEC,
    THEME_PATH_PREFIX,
    THEME_PATH_REPLACEMENT,
    CopySpec,
    FetchSpec,
    StylesheetSpec,
)
from server_styles.instance import InstanceHandle
from server_styles.network_utils import fetch_text
from server_styles.runtime import DockerRuntime
from server_styles.utils.logging import log_event

logger = logging.getLogger(__name__)


def fix_theme_paths(css: str) -> str:
    """Point server-absolute theming URLs at the extracted tree.

    ``url(/apps/theming/img/background.jpg)`` becomes ``url(../img/background.jpg)``,
    which resolves from ``apps/theming/{css,theme}/``.
    """
    return css.replace(THEME_PATH_PREFIX, THEME_PATH_REPLACEMENT)


class OutputTree:
    """The version output directory and its fixed skeleton."""

    def __init__(self, root: Path, template_dir: Path, spec: FetchSpec = DEFAULT_FETCH_SPEC) -> None:
        self.root = Path(root)
        self.template_dir = Path(template_dir)
        self.spec = spec

    def path(self, relative: str) -> Path:
        return self.root / relative

    def exists(self) -> bool:
        return self.root.exists()

    def create(self) -> None:
        """Recreate the tree from scratch so no stale file survives a re-run."""
        self.remove()
        self.root.mkdir(parents=True)
        for relative in self.spec.skeleton:
            self.path(relative).mkdir(parents=True, exist_ok=True)
        for name in self.spec.templates:
            shutil.copyfile(self.template_dir / name, self.path(name))

    def remove(self) -> None:
        if self.root.exists():
            shutil.rmtree(self.root)


@dataclasses.dataclass
class ExtractionResult:
    output_dir: Path
    copied: list[str] = dataclasses.field(default_factory=list)
    fetched: list[str] = dataclasses.field(default_factory=list)
    manifest_path: Path | None = None
    reuse_toml: Path | None = None

    @property
    def has_manifest(self) -> bool:
        return self.manifest_path is not None


class AssetFetcher:
    def __init__(
        self,
        config: StylesConfig,
        runtime: DockerRuntime,
        session: requests.Session,
        *,
        spec: FetchSpec = DEFAULT_FETCH_SPEC,
    ) -> None:
        self.config = config
        self.runtime = runtime
        self.session = session
        self.spec = spec

    def _instance_path(self, relative: str) -> str:
        return f"{self.config.instance_root.rstrip('/')}/{relative}"

    def extract_all(self, handle: InstanceHandle, tree: OutputTree) -> ExtractionResult:
        """Copy static assets, fetch generated stylesheets and pick up the license manifest.

        Raises:
            AssetExtractionError: A required copy or fetch failed. The tree is
                left as is; cleaning it up is the caller's decision.
        """
        result = ExtractionResult(output_dir=tree.root)
        for spec in self.spec.copies:
            self._copy(handle, spec, tree)
            result.copied.append(spec.source)
        result.manifest_path = self._copy_manifest(handle, tree)
        for spec in self.spec.stylesheets:
            self._fetch_stylesheet(spec, tree)
            result.fetched.append(spec.destination)
        log_event(
            logger,
            "Extracted assets",
            copied=len(result.copied),
            fetched=len(result.fetched),
            manifest=result.manifest_path.name if result.manifest_path else None,
        )
        return result

    def _copy(self, handle: InstanceHandle, spec: CopySpec, tree: OutputTree) -> None:
        source = self._instance_path(spec.source)
        try:
            self.runtime.copy_from(handle.name, source, tree.path(spec.destination))
        except RuntimeCommandError as exc:
            raise AssetExtractionError(
                f"Failed to copy {source} from {handle.name}",
                context={"source": source, "destination": spec.destination, **exc.context},
            ) from exc

    def _copy_manifest(self, handle: InstanceHandle, tree: OutputTree) -> Path | None:
        for spec in self.spec.manifests:
            source = self._instance_path(spec.source)
            try:
                self.runtime.copy_from(handle.name, source, tree.path(spec.destination))
            except RuntimeCommandError as exc:
                logger.debug("No license manifest at %s: %s", source, exc.message)
                continue
            return tree.path(spec.destination)
        logger.info("No license manifest found on %s", handle.name)
        return None

    def _fetch_stylesheet(self, spec: StylesheetSpec, tree: OutputTree) -> None:
        url = f"{self.config.base_url}{spec.url_path}"
        try:
            css = fetch_text(self.session, url, timeout=self.config.request_timeout)
        except requests.RequestException as exc:
            raise AssetExtractionError(
                f"Failed to fetch {url}: {exc}",
                context={"url": url, "destination": spec.destination},
            ) from exc
        destination = tree.path(spec.destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(fix_theme_paths(css), encoding="utf-8")
