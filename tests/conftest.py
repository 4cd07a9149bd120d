"""
Pytest configuration and fixtures for rigik tests.
"""

from pathlib import Path

import numpy as np
import pytest

from rigik.core import Config, Bone, build_humanoid_skeleton

ROOT = Path(__file__).resolve().parent.parent
CONFIG_PATH = ROOT / "config.yaml"


@pytest.fixture
def config_path():
    return CONFIG_PATH


@pytest.fixture
def config():
    """Repository config, reloaded from disk for every test."""
    return Config(str(CONFIG_PATH))


@pytest.fixture
def two_link_chain():
    """Root and mid bones with three revolution DOFs each, and a static tip.

    Straight along +Y in the rest pose, tip at (0, 2, 0).
    """
    return [
        Bone("root"),
        Bone("mid", offset=(0.0, 1.0, 0.0), parent_index=0),
        Bone("tip", offset=(0.0, 1.0, 0.0), parent_index=1, static=True),
    ]


@pytest.fixture
def humanoid():
    """Mixamo humanoid in T-pose with scene nodes attached."""
    return build_humanoid_skeleton()


@pytest.fixture
def rng():
    return np.random.default_rng(7)
