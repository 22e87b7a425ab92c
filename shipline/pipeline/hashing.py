from __future__ import annotations

import base64
import json
from pathlib import Path

from shipline.core.result import Err, Ok, Result
from shipline.core.structured import as_str_dict, get_str
from shipline.output.console import ConsoleProtocol
from shipline.pipeline.errors import PipelineError
from shipline.pipeline.timeouts import NIX_PREFETCH_TIMEOUT_SECONDS
from shipline.platform.process import run as run_process


# Nix's base32 alphabet omits e, o, u and t.
_NIX32_ALPHABET = "0123456789abcdfghijklmnpqrsvwxyz"
_SHA256_SIZE = 32


def _nix32_decode(text: str, size: int) -> bytes | None:
    out = bytearray(size)
    for n in range(len(text)):
        digit = _NIX32_ALPHABET.find(text[len(text) - n - 1])
        if digit < 0:
            return None
        b = n * 5
        i, j = divmod(b, 8)
        out[i] |= (digit << j) & 0xFF
        carry = digit >> (8 - j)
        if i + 1 < size:
            out[i + 1] |= carry
        elif carry:
            return None
    return bytes(out)


def to_sri_sha256(value: str) -> str | None:
    """Normalize a sha256 digest (SRI, hex or nix base32) to SRI form."""
    value = value.strip()
    if value.startswith("sha256-"):
        return value

    raw: bytes | None = None
    if len(value) == 2 * _SHA256_SIZE:
        try:
            raw = bytes.fromhex(value)
        except ValueError:
            raw = None
    elif len(value) == 52:
        raw = _nix32_decode(value, _SHA256_SIZE)

    if raw is None:
        return None
    return "sha256-" + base64.b64encode(raw).decode("ascii")


def nix_prefetch_source_hash(
    *,
    cwd: Path,
    repo_url: str,
    rev: str,
    console: ConsoleProtocol,
) -> Result[str, PipelineError]:
    """SRI hash of the source tree at rev, as fetchFromGitHub/fetchgit expects it."""
    cmd = ["nix-prefetch-git", "--url", repo_url, "--rev", rev, "--quiet"]
    console.command(cmd)
    result = run_process(cmd, cwd=cwd, timeout=NIX_PREFETCH_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        e = result.error
        return Err(
            PipelineError(
                kind="propagation_failed",
                message=f"nix-prefetch-git failed for {rev}",
                hint=e.detail(),
            )
        )

    try:
        obj: object = json.loads(result.value)
    except json.JSONDecodeError as e:
        return Err(
            PipelineError(
                kind="propagation_failed",
                message=f"invalid JSON from nix-prefetch-git: {e}",
            )
        )

    data = as_str_dict(obj)
    if data is None:
        return Err(PipelineError(kind="propagation_failed", message="unexpected nix-prefetch-git payload"))

    for key in ("hash", "sha256"):
        raw = get_str(data, key)
        if raw is None:
            continue
        sri = to_sri_sha256(raw)
        if sri is not None:
            return Ok(sri)

    return Err(
        PipelineError(
            kind="propagation_failed",
            message="nix-prefetch-git returned no usable sha256",
            hint=result.value.strip()[:200] or None,
        )
    )
