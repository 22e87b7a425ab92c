from __future__ import annotations

import pytest

from ._utils import iter_source_files, matches_prefix, parse_imports, shipline_root

# package -> packages it must not import
FORBIDDEN = {
    "core": ("shipline.platform", "shipline.git", "shipline.output", "shipline.pipeline", "shipline.cli"),
    "platform": ("shipline.git", "shipline.output", "shipline.pipeline", "shipline.cli"),
    "git": ("shipline.output", "shipline.pipeline", "shipline.cli"),
    "pipeline": ("shipline.cli",),
    "output": ("shipline.cli",),
}


@pytest.mark.parametrize("package", sorted(FORBIDDEN))
def test_lower_layers_do_not_import_upper_layers(package: str) -> None:
    root = shipline_root()
    offenders: list[str] = []

    for file_path in iter_source_files(root / package):
        rel = file_path.relative_to(root)
        for item in parse_imports(file_path):
            if any(matches_prefix(item.module, prefix) for prefix in FORBIDDEN[package]):
                offenders.append(f"{rel}:{item.line}: forbidden import '{item.module}'")

    assert not offenders, f"{package} layering violations:\n" + "\n".join(offenders)
