"""Build matrix executor."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import pytest

import shipline.pipeline.matrix as matrix_mod
from shipline.core.result import Err, Ok, Result
from shipline.output.console import MockConsole
from shipline.pipeline.config import BUILD_MATRIX
from shipline.pipeline.matrix import BuildSettings, execute_matrix, find_cell, github_matrix
from shipline.platform.detection import HostPlatform
from shipline.platform.process import ProcessError


@pytest.fixture
def any_host(monkeypatch: pytest.MonkeyPatch) -> None:
    """Let every cell build on the test host."""
    monkeypatch.setattr(matrix_mod, "check_host", lambda cell, host: Ok(None))


def _settings(tmp_path: Path) -> BuildSettings:
    return BuildSettings(
        project="opsops",
        binary="opsops",
        command=("cargo", "build", "--release"),
        work_dir=tmp_path / ".shipline" / "work",
        artifacts_dir=tmp_path / "artifacts",
    )


class FakeCargo:
    """Writes a binary where cargo would, unless the cell is set to fail."""

    def __init__(self, fail: set[str] | None = None) -> None:
        self.fail = fail or set()
        self.calls: list[tuple[list[str], str]] = []

    def __call__(
        self,
        cmd: list[str],
        cwd: Path,
        env: Mapping[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> Result[str, ProcessError]:
        assert env is not None
        target_dir = Path(env["CARGO_TARGET_DIR"])
        self.calls.append((cmd, target_dir.name))
        if target_dir.name in self.fail:
            return Err(ProcessError(tuple(cmd), 101, "", f"error: linker failed for {target_dir.name}"))

        if "--target" in cmd:
            triple = cmd[cmd.index("--target") + 1]
            out = target_dir / triple / "release" / "opsops"
        else:
            out = target_dir / "release" / "opsops"
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(f"binary for {target_dir.name}".encode())
        return Ok("")


class TestDescriptor:
    def test_output_path_asymmetry(self, tmp_path: Path) -> None:
        native = find_cell(BUILD_MATRIX, "macos-x86_64")
        cross = find_cell(BUILD_MATRIX, "macos-aarch64")
        assert native is not None and cross is not None

        assert native.output_path(tmp_path, "opsops") == tmp_path / "release" / "opsops"
        assert cross.output_path(tmp_path, "opsops") == (
            tmp_path / "aarch64-apple-darwin" / "release" / "opsops"
        )
        assert native.cargo_args() == []
        assert cross.cargo_args() == ["--target", "aarch64-apple-darwin"]
        assert cross.is_cross and not native.is_cross

    def test_find_cell_unknown(self) -> None:
        assert find_cell(BUILD_MATRIX, "windows-x86_64") is None


@pytest.mark.usefixtures("any_host")
class TestExecuteMatrix:
    def test_all_cells_upload_their_artifact(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        cargo = FakeCargo()
        monkeypatch.setattr(matrix_mod, "run_process", cargo)
        settings = _settings(tmp_path)

        result = execute_matrix(
            project_root=tmp_path,
            cells=BUILD_MATRIX,
            settings=settings,
            console=MockConsole(),
            dry_run=False,
        )

        assert isinstance(result, Ok)
        assert [o.cell.platform_id for o in result.value] == [c.platform_id for c in BUILD_MATRIX]
        for outcome in result.value:
            expected = tmp_path / "artifacts" / f"opsops-{outcome.cell.platform_id}" / "opsops"
            assert outcome.artifact == expected
            assert expected.read_bytes() == f"binary for {outcome.cell.platform_id}".encode()

        # each cell gets its own target directory
        assert sorted(name for _, name in cargo.calls) == sorted(c.platform_id for c in BUILD_MATRIX)

    def test_failing_cell_does_not_abort_siblings(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        cargo = FakeCargo(fail={"linux-aarch64"})
        monkeypatch.setattr(matrix_mod, "run_process", cargo)
        console = MockConsole()

        result = execute_matrix(
            project_root=tmp_path,
            cells=BUILD_MATRIX,
            settings=_settings(tmp_path),
            console=console,
            dry_run=False,
        )

        assert isinstance(result, Err)
        assert result.error.kind == "build_failed"
        assert "linux-aarch64" in result.error.message
        assert "1 of 4" in result.error.message
        assert len(cargo.calls) == 4
        assert (tmp_path / "artifacts" / "opsops-macos-aarch64" / "opsops").is_file()
        assert console.has_error()

    def test_missing_output_is_a_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def no_output(
            cmd: list[str], cwd: Path, env: object = None, *, timeout: float | None = None
        ) -> Result[str, ProcessError]:
            return Ok("")

        monkeypatch.setattr(matrix_mod, "run_process", no_output)
        cell = BUILD_MATRIX[0]

        result = execute_matrix(
            project_root=tmp_path,
            cells=[cell],
            settings=_settings(tmp_path),
            console=MockConsole(),
            dry_run=False,
        )

        assert isinstance(result, Err)
        assert "produced no binary" in (result.error.hint or "") + result.error.message

    def test_crashing_cell_is_reported(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def boom(*_: object, **__: object) -> Result[str, ProcessError]:
            raise RuntimeError("runner vanished")

        monkeypatch.setattr(matrix_mod, "run_process", boom)

        result = execute_matrix(
            project_root=tmp_path,
            cells=BUILD_MATRIX[:2],
            settings=_settings(tmp_path),
            console=MockConsole(),
            dry_run=False,
        )

        assert isinstance(result, Err)
        assert "2 of 2" in result.error.message

    def test_dry_run_only_prints(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        cargo = FakeCargo()
        monkeypatch.setattr(matrix_mod, "run_process", cargo)
        console = MockConsole()

        result = execute_matrix(
            project_root=tmp_path,
            cells=BUILD_MATRIX,
            settings=_settings(tmp_path),
            console=console,
            dry_run=True,
        )

        assert isinstance(result, Ok)
        assert cargo.calls == []
        assert "cargo build --release --target aarch64-apple-darwin" in console.commands
        assert not (tmp_path / "artifacts").exists()


class TestHostCheck:
    def test_native_cell_needs_its_own_platform(self) -> None:
        cell = find_cell(BUILD_MATRIX, "linux-aarch64")
        assert cell is not None

        result = matrix_mod.check_host(cell, HostPlatform(os="linux", arch="x86_64"))

        assert isinstance(result, Err)
        assert result.error.kind == "build_failed"
        assert result.error.message == "linux-aarch64 needs a linux/aarch64 runner (host is linux/x86_64)"
        assert "ubuntu-24.04-arm" in (result.error.hint or "")

    def test_native_cell_on_matching_host(self) -> None:
        cell = find_cell(BUILD_MATRIX, "macos-x86_64")
        assert cell is not None

        assert matrix_mod.check_host(cell, HostPlatform(os="macos", arch="x86_64")) == Ok(None)

    def test_cross_cell_needs_its_os_only(self) -> None:
        cell = find_cell(BUILD_MATRIX, "macos-aarch64")
        assert cell is not None

        assert matrix_mod.check_host(cell, HostPlatform(os="macos", arch="x86_64")) == Ok(None)
        result = matrix_mod.check_host(cell, HostPlatform(os="linux", arch="aarch64"))
        assert isinstance(result, Err)
        assert "needs a macos runner" in result.error.message

    def test_unknown_host(self) -> None:
        result = matrix_mod.check_host(BUILD_MATRIX[0], HostPlatform(os=None, arch=None))

        assert isinstance(result, Err)
        assert "host is unknown/unknown" in result.error.message

    def test_one_host_never_publishes_other_platforms(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        cargo = FakeCargo()
        monkeypatch.setattr(matrix_mod, "run_process", cargo)
        monkeypatch.setattr(matrix_mod, "detect_host", lambda: HostPlatform(os="linux", arch="x86_64"))

        result = execute_matrix(
            project_root=tmp_path,
            cells=BUILD_MATRIX,
            settings=_settings(tmp_path),
            console=MockConsole(),
            dry_run=False,
        )

        assert isinstance(result, Err)
        assert "3 of 4" in result.error.message
        assert [name for _, name in cargo.calls] == ["linux-x86_64"]
        uploaded = sorted(p.name for p in (tmp_path / "artifacts").iterdir())
        assert uploaded == ["opsops-linux-x86_64"]


def test_github_matrix() -> None:
    doc = github_matrix(BUILD_MATRIX, project="opsops")

    include = doc["include"]
    assert isinstance(include, list)
    assert include[0] == {
        "cell": "linux-x86_64",
        "os": "linux",
        "arch": "x86_64",
        "runs-on": "ubuntu-latest",
        "artifact": "opsops-linux-x86_64",
    }
    assert include[3]["target"] == "aarch64-apple-darwin"
    assert include[1]["runs-on"] == "ubuntu-24.04-arm"
