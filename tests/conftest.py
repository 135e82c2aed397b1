from __future__ import annotations

import shutil
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


import pytest

from tests.go_fakes import write_fake_go

TESTDATA = Path(__file__).resolve().parent / "testdata"


@pytest.fixture
def fake_go(tmp_path: Path):
    def _make(plan: dict[str, dict[str, object]]) -> Path:
        return write_fake_go(tmp_path / "bin", plan)

    return _make


@pytest.fixture
def testdata_module(tmp_path: Path):
    """Copy a Go module from tests/testdata so go can write build artifacts."""

    def _copy(name: str) -> Path:
        target = tmp_path / name
        shutil.copytree(TESTDATA / name, target)
        return target

    return _copy
