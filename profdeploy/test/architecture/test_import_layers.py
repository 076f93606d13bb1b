# SPDX-License-Identifier: MIT
from __future__ import annotations

import pytest

from ._gate import require_arch_checks_enabled
from ._utils import iter_python_files, matches_prefix, package_root, parse_imports


@pytest.mark.parametrize(
    ("layer", "forbidden"),
    [
        ("services", ("profdeploy.cli",)),
        ("git", ("profdeploy.cli", "profdeploy.services")),
        ("platform", ("profdeploy.cli", "profdeploy.services", "profdeploy.git")),
        (
            "core",
            ("profdeploy.cli", "profdeploy.services", "profdeploy.git", "profdeploy.platform"),
        ),
    ],
)
def test_layers_do_not_import_upwards(layer: str, forbidden: tuple[str, ...]) -> None:
    require_arch_checks_enabled()

    root = package_root()
    offenders: list[str] = []

    for file_path in iter_python_files(root / layer):
        rel = file_path.relative_to(root)
        for item in parse_imports(file_path):
            if any(matches_prefix(item.module, prefix) for prefix in forbidden):
                offenders.append(f"{rel}:{item.line}: forbidden import '{item.module}'")

    assert not offenders, f"{layer} layering violations:\n" + "\n".join(offenders)
