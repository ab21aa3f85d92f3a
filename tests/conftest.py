import os
import sys
from pathlib import Path

import pytest

# Ensure the 'src' directory is on sys.path for imports in tests
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# Keep test output quiet unless a test opts in
os.environ.setdefault("FIELDMERKLE_LOG_LEVEL", "WARNING")


@pytest.fixture
def additive():
    from fieldmerkle_api.hasher import AdditiveHasher

    return AdditiveHasher()


@pytest.fixture(scope="session")
def poseidon():
    from fieldmerkle_api.hasher import get_hasher

    return get_hasher("poseidon-bn256")
