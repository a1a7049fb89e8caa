import os
import sys

import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# backend/ modules import each other as top-level modules
sys.path.insert(0, os.path.join(REPO_ROOT, "backend"))

# scripts/ entry points are tested directly too
sys.path.insert(0, os.path.join(REPO_ROOT, "scripts"))


@pytest.fixture
def repo_data_path():
    """The bundled sample dataset under data/."""
    return os.path.join(REPO_ROOT, "data")
