import sys
import random
from pathlib import Path

import pytest

# Ensure the package is importable without installation
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from thoughtcanvas.interaction import InteractionController  # noqa: E402
from thoughtcanvas.store import MindMapStore  # noqa: E402
from thoughtcanvas.viewport import Viewport  # noqa: E402


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def store(rng):
    """A fresh map holding only the "Central Idea" root at (0, 0)."""
    return MindMapStore.create_default(rng=rng)


@pytest.fixture
def controller(store):
    """Controller with an identity viewport (screen == world)."""
    return InteractionController(store, Viewport(0.0, 0.0, 1.0))
