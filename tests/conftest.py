from __future__ import annotations

import shutil
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

FIXTURES = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture()
def statements_dir(tmp_path: Path) -> Path:
    dst = tmp_path / "statements"
    shutil.copytree(FIXTURES / "statements", dst)
    return dst
