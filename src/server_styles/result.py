"""
server_styles/result.py

Outcome type for the pipeline phases.

Error Handling Convention:
--------------------------
1. **Exceptions** are raised inside a phase:
   - MissingVersionArgument: no version given (raised before any phase runs)
   - InstanceProvisioningError / ReadinessTimeoutError: the container could
     not be created, started or never became ready
   - AssetExtractionError: a copy or stylesheet fetch failed
   - ManifestParseError: the license manifest could not be parsed

2. **Result values** (this module) are returned by ``StylesPipeline.run()`` so
   the caller sees which kind of failure happened without catching anything:
   - Ok(value, **extras) for a complete snapshot
   - Err("<error code>", "message", **extras) for any failure

Usage:
------
    result = StylesPipeline(config).run()
    if result.is_ok:
        print(f"Styles written to {result.value.output_dir}")
    else:
        print(f"Failed: {result.error}: {result.message}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    """
    Either success (Ok) or failure (Err).

    Attributes:
        status: "ok" or "error"
        value: The success value (only meaningful when status="ok")
        error: Error code (only meaningful when status="error")
        message: Human-readable error message
        extras: Additional context (output_dir, reuse_toml, ...)
    """

    status: str
    value: T | None = None
    error: str | None = None
    message: str | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"

    @property
    def is_err(self) -> bool:
        return self.status == "error"


def Ok(value: T = None, **extras: Any) -> Result[T]:  # noqa: N802 - intentional PascalCase
    return Result(status="ok", value=value, extras=extras)


def Err(error: str, message: str | None = None, **extras: Any) -> Result[Any]:  # noqa: N802
    return Result(status="error", error=error, message=message, extras=extras)
