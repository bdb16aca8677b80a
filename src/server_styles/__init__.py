"""Snapshot the compiled styles of a server release from an ephemeral container."""

from server_styles.__version__ import __version__
from server_styles.assets import AssetFetcher, ExtractionResult, OutputTree, fix_theme_paths
from server_styles.config import StylesConfig, instance_name
from server_styles.instance import InstanceHandle, InstanceManager, InstanceState
from server_styles.pipeline import StylesPipeline, run_pipeline
from server_styles.reuse import ReuseAnnotation, ReuseManifest, reconcile

__all__ = [
    "__version__",
    "StylesConfig",
    "instance_name",
    "InstanceHandle",
    "InstanceManager",
    "InstanceState",
    "AssetFetcher",
    "ExtractionResult",
    "OutputTree",
    "fix_theme_paths",
    "ReuseAnnotation",
    "ReuseManifest",
    "reconcile",
    "StylesPipeline",
    "run_pipeline",
]
