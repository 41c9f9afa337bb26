import random
import sys
from pathlib import Path

# Ensure package import for tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest


@pytest.fixture
def rng() -> random.Random:
    """Seeded generator so random-range tests are reproducible."""

    return random.Random(1234)
