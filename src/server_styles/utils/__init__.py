"""Shared utility functions for the styles extractor."""

from server_styles.utils.logging import log_event
from server_styles.utils.subprocess import probe_cmd, run_cmd

__all__ = [
    "log_event",
    "run_cmd",
    "probe_cmd",
]
