from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass
class StylesError(Exception):
    message: str
    code: str = "styles_error"
    context: dict[str, Any] = field(default_factory=dict)

    def __init__(self, message: str, *, code: str | None = None, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.code
        self.context = dict(context or {})

    def __str__(self) -> str:
        return self.message

    def as_log_fields(self) -> dict[str, Any]:
        return {
            "error_code": self.code,
            "error_message": self.message,
            "error_context": self.context,
        }


class MissingVersionArgument(StylesError):
    code = "missing_version"


class ConfigValidationError(StylesError):
    code = "config_validation_error"


class RuntimeCommandError(StylesError):
    code = "runtime_command_error"

    def __init__(self, message: str, *, cmd: list[str], returncode: int, output: str = "") -> None:
        super().__init__(
            message,
            context={"cmd": list(cmd), "returncode": returncode, "output": output},
        )


class InstanceProvisioningError(StylesError):
    code = "instance_provisioning_error"


class ReadinessTimeoutError(InstanceProvisioningError):
    code = "readiness_timeout"

    def __init__(self, message: str, *, attempts: int, url: str | None = None) -> None:
        context: dict[str, Any] = {"attempts": attempts}
        if url:
            context["url"] = url
        super().__init__(message, context=context)


class AssetExtractionError(StylesError):
    code = "asset_extraction_error"


class ManifestParseError(StylesError):
    code = "manifest_parse_error"
