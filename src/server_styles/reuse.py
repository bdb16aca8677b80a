"""REUSE license manifest handling.

The source instance ships its license ledger either as a Debian ``dep5``
copyright file (``.reuse/dep5``) or as a ``REUSE.toml``. Both are parsed into
the same ``ReuseManifest``, narrowed down to the files that were actually
extracted, extended with an entry for the generated theme stylesheets and
written out as ``REUSE.toml`` at the root of the output tree.

Narrowing is per file: an annotation covering ``core/img/*`` and
``apps/files/img/*`` keeps only ``core/img/*``. An annotation left with no
files is dropped.
"""

from __future__ import annotations

import dataclasses
import logging
import shutil
import tomllib
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any, Literal

from server_styles.exceptions import ManifestParseError
from server_styles.fetch_spec import MANIFEST_TRANSPORT_DIR, REUSE_TOML
from server_styles.utils.logging import log_event

logger = logging.getLogger(__name__)

REUSE_TOML_VERSION = 1
DEFAULT_PRECEDENCE = "aggregate"


@dataclasses.dataclass(frozen=True)
class ReuseAnnotation:
    files: tuple[str, ...]
    copyright: str
    license: str


@dataclasses.dataclass
class ReuseManifest:
    annotations: list[ReuseAnnotation] = dataclasses.field(default_factory=list)
    package_name: str | None = None
    package_supplier: str | None = None
    package_download_location: str | None = None


@dataclasses.dataclass(frozen=True)
class PathRule:
    kind: Literal["exact", "prefix"]
    value: str

    def matches(self, path: str) -> bool:
        if self.kind == "exact":
            return path == self.value
        return path.startswith(self.value)


# Mirrors the copies in fetch_spec.yaml: everything the fetcher copies and nothing else.
EXTRACTED_PATH_RULES: tuple[PathRule, ...] = (
    PathRule("exact", "core/img"),
    PathRule("prefix", "core/img/"),
    PathRule("exact", "core/css/server.css"),
    PathRule("exact", "dist/icons.css"),
    PathRule("exact", "core/css/apps.css"),
    PathRule("prefix", "apps/theming/img/"),
)

# The theme stylesheets are rendered by the theming app at request time and
# have no entry in the source manifest; they carry the license of default.css.
THEME_ANNOTATION = ReuseAnnotation(
    files=(
        "apps/theming/theme/light.css",
        "apps/theming/theme/dark.css",
        "apps/theming/theme/light.plain.css",
        "apps/theming/theme/dark.plain.css",
    ),
    copyright="2022 Nextcloud GmbH and Nextcloud contributors",
    license="AGPL-3.0-or-later",
)


def matches_extracted(path: str, rules: Sequence[PathRule] = EXTRACTED_PATH_RULES) -> bool:
    return any(rule.matches(path) for rule in rules)


def filter_annotations(
    annotations: Iterable[ReuseAnnotation],
    predicate: Callable[[str], bool],
) -> list[ReuseAnnotation]:
    filtered: list[ReuseAnnotation] = []
    for annotation in annotations:
        files = tuple(path for path in annotation.files if predicate(path))
        if files:
            filtered.append(dataclasses.replace(annotation, files=files))
    return filtered


# ---------------------------------------------------------------------------
# dep5
# ---------------------------------------------------------------------------


def _dep5_paragraphs(text: str) -> list[list[tuple[int, str]]]:
    paragraphs: list[list[tuple[int, str]]] = []
    current: list[tuple[int, str]] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        if line.startswith("#"):
            continue
        if not line.strip():
            if current:
                paragraphs.append(current)
                current = []
            continue
        current.append((lineno, line))
    if current:
        paragraphs.append(current)
    return paragraphs


def _dep5_fields(paragraph: list[tuple[int, str]]) -> dict[str, list[str]]:
    fields: dict[str, list[str]] = {}
    key: str | None = None
    for lineno, line in paragraph:
        if line[0] in " \t":
            if key is None:
                raise ManifestParseError(
                    f"Continuation line without a field at line {lineno}",
                    context={"line": lineno},
                )
            value = line.strip()
            fields[key].append("" if value == "." else value)
            continue
        if ":" not in line:
            raise ManifestParseError(
                f"Expected 'Field: value' at line {lineno}, got: {line}",
                context={"line": lineno},
            )
        name, value = line.split(":", 1)
        key = name.strip().lower()
        fields[key] = [value.strip()]
    return fields


def parse_dep5(text: str) -> ReuseManifest:
    """Parse a Debian machine-readable copyright file (format 1.0)."""
    manifest = ReuseManifest()
    for paragraph in _dep5_paragraphs(text):
        fields = _dep5_fields(paragraph)
        if "format" in fields:
            manifest.package_name = _first_line(fields.get("upstream-name"))
            manifest.package_supplier = _first_line(fields.get("upstream-contact"))
            manifest.package_download_location = _first_line(fields.get("source"))
            continue
        if "files" not in fields:
            # Standalone License paragraphs only carry license texts.
            continue
        files = tuple(" ".join(fields["files"]).split())
        if not files:
            raise ManifestParseError("Files paragraph without any path", context={"line": paragraph[0][0]})
        copyright_lines = [line for line in fields.get("copyright", []) if line]
        manifest.annotations.append(
            ReuseAnnotation(
                files=files,
                copyright="\n".join(copyright_lines),
                license=_first_line(fields.get("license")) or "",
            )
        )
    return manifest


def _first_line(values: list[str] | None) -> str | None:
    if not values:
        return None
    return values[0] or None


# ---------------------------------------------------------------------------
# REUSE.toml
# ---------------------------------------------------------------------------


def _string_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    raise ManifestParseError(
        f"REUSE.toml '{key}' must be a string or a list of strings",
        context={"key": key, "value": value},
    )


def _optional_string(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ManifestParseError(f"REUSE.toml '{key}' must be a string", context={"key": key, "value": value})
    return value


def parse_reuse_toml(text: str) -> ReuseManifest:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ManifestParseError(f"Invalid REUSE.toml: {exc}") from exc
    manifest = ReuseManifest(
        package_name=_optional_string(data, "SPDX-PackageName"),
        package_supplier=_optional_string(data, "SPDX-PackageSupplier"),
        package_download_location=_optional_string(data, "SPDX-PackageDownloadLocation"),
    )
    annotations = data.get("annotations", [])
    if not isinstance(annotations, list):
        raise ManifestParseError("REUSE.toml 'annotations' must be an array of tables")
    for entry in annotations:
        if not isinstance(entry, dict):
            raise ManifestParseError(
                "REUSE.toml 'annotations' must be an array of tables",
                context={"annotation": entry},
            )
        files = tuple(_string_list(entry.get("path"), "path"))
        if not files:
            raise ManifestParseError("REUSE.toml annotation without a path", context={"annotation": entry})
        manifest.annotations.append(
            ReuseAnnotation(
                files=files,
                copyright="\n".join(_string_list(entry.get("SPDX-FileCopyrightText"), "SPDX-FileCopyrightText")),
                license=" AND ".join(_string_list(entry.get("SPDX-License-Identifier"), "SPDX-License-Identifier")),
            )
        )
    return manifest


def parse_manifest(text: str, source_name: str) -> ReuseManifest:
    if source_name.endswith(".toml"):
        return parse_reuse_toml(text)
    return parse_dep5(text)


def _toml_string(value: str) -> str:
    escaped: list[str] = []
    for ch in value:
        if ch == "\\":
            escaped.append("\\\\")
        elif ch == '"':
            escaped.append('\\"')
        elif ch == "\n":
            escaped.append("\\n")
        elif ch == "\t":
            escaped.append("\\t")
        elif ch == "\r":
            escaped.append("\\r")
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            escaped.append(f"\\u{ord(ch):04x}")
        else:
            escaped.append(ch)
    return '"' + "".join(escaped) + '"'


def _toml_value(values: Sequence[str]) -> str:
    if len(values) == 1:
        return _toml_string(values[0])
    return "[" + ", ".join(_toml_string(value) for value in values) + "]"


def render_reuse_toml(manifest: ReuseManifest) -> str:
    lines = [f"version = {REUSE_TOML_VERSION}"]
    header = (
        ("SPDX-PackageName", manifest.package_name),
        ("SPDX-PackageSupplier", manifest.package_supplier),
        ("SPDX-PackageDownloadLocation", manifest.package_download_location),
    )
    for key, value in header:
        if value:
            lines.append(f"{key} = {_toml_string(value)}")
    for annotation in manifest.annotations:
        lines.append("")
        lines.append("[[annotations]]")
        lines.append(f"path = {_toml_value(annotation.files)}")
        lines.append(f"precedence = {_toml_string(DEFAULT_PRECEDENCE)}")
        copyright_lines = [line for line in annotation.copyright.splitlines() if line.strip()]
        if copyright_lines:
            lines.append(f"SPDX-FileCopyrightText = {_toml_value(copyright_lines)}")
        lines.append(f"SPDX-License-Identifier = {_toml_string(annotation.license)}")
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


def reconcile_manifest(
    text: str,
    source_name: str,
    *,
    rules: Sequence[PathRule] = EXTRACTED_PATH_RULES,
) -> ReuseManifest:
    """Parse, narrow to the extracted files and append the theme annotation."""
    manifest = parse_manifest(text, source_name)
    total = len(manifest.annotations)
    manifest.annotations = filter_annotations(manifest.annotations, lambda path: matches_extracted(path, rules))
    log_event(logger, "Filtered license annotations", kept=len(manifest.annotations), total=total)
    manifest.annotations.append(THEME_ANNOTATION)
    return manifest


def reconcile(manifest_path: Path | None, output_dir: Path) -> Path | None:
    """Write ``REUSE.toml`` for the extracted tree.

    Returns the written path, or None when the instance had no manifest; that
    is not an error and no license file is produced. The ``.reuse`` transport
    directory is removed once the manifest has been converted.
    """
    if manifest_path is None:
        logger.info("No license manifest extracted; skipping REUSE.toml")
        return None
    try:
        text = manifest_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ManifestParseError(
            f"{manifest_path.name} is not valid UTF-8: {exc}",
            context={"path": str(manifest_path)},
        ) from exc
    manifest = reconcile_manifest(text, manifest_path.name)
    target = Path(output_dir) / REUSE_TOML
    target.write_text(render_reuse_toml(manifest), encoding="utf-8")
    shutil.rmtree(Path(output_dir) / MANIFEST_TRANSPORT_DIR, ignore_errors=True)
    logger.info("Wrote %s", target)
    return target
