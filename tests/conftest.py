from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

# Ensure local "src/" takes precedence over any globally-installed "docledger" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)


@pytest.fixture
def logger() -> logging.Logger:
    lg = logging.getLogger("docledger.test")
    lg.setLevel(logging.DEBUG)
    return lg
