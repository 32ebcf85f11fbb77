from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

# Ensure local "src/" takes precedence over any globally-installed "auditboard" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)


@pytest.fixture(autouse=True)
def _restore_environ():
    # create_app(boot_runtime=True) and apply_node_config_to_env write os.environ directly.
    saved = dict(os.environ)
    yield
    os.environ.clear()
    os.environ.update(saved)
