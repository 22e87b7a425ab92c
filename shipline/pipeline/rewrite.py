"""Targeted line rewrites of downstream and manifest files.

Files are never regenerated: only the lines carrying the version or a hash
change, everything else (comments, ordering, line endings) is kept byte for
byte. A missing anchor is an error, never a silent no-op: it means the file
format changed underneath the pipeline.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass

from shipline.core.result import Err, Ok, Result
from shipline.pipeline.errors import PipelineError
from shipline.pipeline.semver import SemVer


@dataclass(frozen=True, slots=True)
class AssetRef:
    url: str
    sha256: str


@dataclass(frozen=True, slots=True)
class FormulaArch:
    anchor: str  # the hardware conditional opening the url/sha256 block
    platform_id: str


FORMULA_ARCHES: tuple[FormulaArch, ...] = (
    FormulaArch(anchor="Hardware::CPU.arm", platform_id="macos-aarch64"),
    FormulaArch(anchor="Hardware::CPU.intel", platform_id="macos-x86_64"),
)

_FORMULA_VERSION_RE = re.compile(r'^(\s*)version\s+"[^"\n]*"')
_FORMULA_URL_RE = re.compile(r'\burl\s+"[^"\n]*"')
_FORMULA_SHA_RE = re.compile(r'\bsha256\s+"[^"\n]*"')

_NIX_VERSION_RE = re.compile(r'^(\s*)version\s*=\s*"[^"\n]*"\s*;')
_NIX_HASH_RE = re.compile(r'^(\s*)(sha256|hash)\s*=\s*"[^"\n]*"\s*;')

_SECTION_RE = re.compile(r"^\s*\[")
_MANIFEST_VERSION_RE = re.compile(r'^(\s*)version(\s*)=(\s*)"[^"\n]*"')


def _anchor_missing(what: str, file_label: str) -> PipelineError:
    return PipelineError(
        kind="anchor_missing",
        message=f"{file_label}: {what} not found",
        hint="The downstream file format changed; update the rewrite anchors.",
    )


def _replace_single(
    lines: list[str],
    pattern: re.Pattern[str],
    replace: str,
    *,
    what: str,
    file_label: str,
) -> Result[None, PipelineError]:
    """Rewrite the one line matching pattern; zero or several matches is an error."""
    hits = [i for i, line in enumerate(lines) if pattern.search(line)]
    if not hits:
        return Err(_anchor_missing(what, file_label))
    if len(hits) > 1:
        return Err(
            PipelineError(
                kind="anchor_missing",
                message=f"{file_label}: {what} is ambiguous ({len(hits)} matches)",
                hint=f"lines {', '.join(str(i + 1) for i in hits)}",
            )
        )
    i = hits[0]
    lines[i] = pattern.sub(replace, lines[i], count=1)
    return Ok(None)


def _block_end(lines: list[str], start: int, anchors: list[str]) -> int:
    """Index just past the block opened at start."""
    indent = len(lines[start]) - len(lines[start].lstrip())
    for i in range(start + 1, len(lines)):
        line = lines[i]
        if any(anchor in line for anchor in anchors):
            return i
        if line.strip() == "end" and len(line) - len(line.lstrip()) <= indent:
            return i
    return len(lines)


def rewrite_formula(
    text: str,
    *,
    version: SemVer,
    assets: Mapping[str, AssetRef],
    arches: tuple[FormulaArch, ...] = FORMULA_ARCHES,
) -> Result[str, PipelineError]:
    """Update `version` and each architecture block's `url` + `sha256`.

    A block runs from the line containing the arch anchor to its closing
    `end` or the next arch anchor, and must hold exactly one `url` and one
    `sha256` line.
    """
    label = "formula"
    lines = text.splitlines(keepends=True)

    done = _replace_single(
        lines,
        _FORMULA_VERSION_RE,
        rf'\g<1>version "{version}"',
        what="version line",
        file_label=label,
    )
    if isinstance(done, Err):
        return done

    for arch in arches:
        asset = assets.get(arch.platform_id)
        if asset is None:
            return Err(
                PipelineError(
                    kind="invalid_input",
                    message=f"{label}: no release asset for {arch.platform_id}",
                )
            )

        start = next((i for i, ln in enumerate(lines) if arch.anchor in ln), None)
        if start is None:
            return Err(_anchor_missing(f"'{arch.anchor}' block", label))

        stop = _block_end(lines, start, [a.anchor for a in arches])
        block = lines[start + 1 : stop]
        done = _replace_single(
            block,
            _FORMULA_URL_RE,
            f'url "{asset.url}"',
            what=f"url in '{arch.anchor}' block",
            file_label=label,
        )
        if isinstance(done, Ok):
            done = _replace_single(
                block,
                _FORMULA_SHA_RE,
                f'sha256 "{asset.sha256}"',
                what=f"sha256 in '{arch.anchor}' block",
                file_label=label,
            )
        if isinstance(done, Err):
            return done
        lines[start + 1 : stop] = block

    return Ok("".join(lines))


def rewrite_nix_module(
    text: str,
    *,
    version: SemVer,
    source_hash: str,
) -> Result[str, PipelineError]:
    """Update the single `version = "...";` and `sha256`/`hash = "...";` lines."""
    label = "nix module"
    lines = text.splitlines(keepends=True)

    done = _replace_single(
        lines,
        _NIX_VERSION_RE,
        rf'\g<1>version = "{version}";',
        what="version attribute",
        file_label=label,
    )
    if isinstance(done, Err):
        return done

    done = _replace_single(
        lines,
        _NIX_HASH_RE,
        rf'\g<1>\g<2> = "{source_hash}";',
        what="source hash attribute",
        file_label=label,
    )
    if isinstance(done, Err):
        return done

    return Ok("".join(lines))


def set_manifest_version(text: str, *, version: SemVer) -> Result[str, PipelineError]:
    """Set `version` in the `[package]` table of a Cargo-style manifest."""
    lines = text.splitlines(keepends=True)
    in_package = False
    for i, line in enumerate(lines):
        if _SECTION_RE.match(line):
            in_package = line.strip() == "[package]"
            continue
        if in_package and _MANIFEST_VERSION_RE.match(line):
            lines[i] = _MANIFEST_VERSION_RE.sub(rf'\g<1>version\g<2>=\g<3>"{version}"', line, count=1)
            return Ok("".join(lines))
    return Err(_anchor_missing("[package] version", "manifest"))
