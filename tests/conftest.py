"""
Shared synthetic hands.

Coordinates follow the image convention (x right, y down, z = 0).  The
open-palm pose reaches exactly 1.0 at the middle fingertip, so normalising
it is an identity; the fist pose reaches 0.54 at the middle PIP.
"""

from __future__ import annotations

import numpy as np
import pytest

# Open palm, fingers together, thumb folded onto the palm (letter B).
OPEN_PALM = [
    (0.00, 0.00),                                                # wrist
    (-0.10, -0.10), (-0.15, -0.20), (-0.12, -0.28), (-0.08, -0.32),  # thumb
    (-0.12, -0.40), (-0.12, -0.60), (-0.12, -0.75), (-0.12, -0.90),  # index
    (0.00, -0.42), (0.00, -0.64), (0.00, -0.82), (0.00, -1.00),      # middle
    (0.11, -0.40), (0.11, -0.60), (0.11, -0.76), (0.11, -0.92),      # ring
    (0.21, -0.36), (0.21, -0.52), (0.21, -0.64), (0.21, -0.76),      # pinky
]

# Fist with the thumb resting beside the index finger (letter A).
FIST_THUMB_SIDE = [
    (0.00, 0.00),
    (-0.12, -0.08), (-0.22, -0.18), (-0.26, -0.30), (-0.28, -0.40),
    (-0.12, -0.40), (-0.12, -0.52), (-0.10, -0.42), (-0.10, -0.34),
    (0.00, -0.42), (0.00, -0.54), (0.00, -0.44), (0.00, -0.36),
    (0.11, -0.40), (0.11, -0.51), (0.11, -0.42), (0.11, -0.35),
    (0.21, -0.36), (0.21, -0.45), (0.21, -0.38), (0.21, -0.32),
]


def make_hand(points_2d, origin=(0.5, 0.7, 0.0), scale=0.3) -> np.ndarray:
    """Place a 2-D pose in image space as a (21, 3) landmark array."""
    xy = np.asarray(points_2d, dtype=np.float32)
    hand = np.zeros((21, 3), dtype=np.float32)
    hand[:, :2] = xy * scale
    return hand + np.asarray(origin, dtype=np.float32)


@pytest.fixture
def open_palm() -> np.ndarray:
    return make_hand(OPEN_PALM)


@pytest.fixture
def fist() -> np.ndarray:
    return make_hand(FIST_THUMB_SIDE)


# ── One pose per letter ──────────────────────────────────────────────────────
# Each finger is (MCP, PIP, DIP, TIP); the thumb is (CMC, MCP, IP, TIP).
# Every pose has its farthest joint exactly 1.0 from the wrist, so the
# coordinates below are already the normalised ones.

# Open-hand scale: knuckles ~0.4 from the wrist.
INDEX_UP = [(-0.12, -0.40), (-0.12, -0.60), (-0.12, -0.75), (-0.12, -0.90)]
INDEX_TILTED = [(-0.12, -0.40), (-0.16, -0.60), (-0.20, -0.75), (-0.24, -0.88)]
INDEX_REACH = [(-0.12, -0.40), (-0.20, -0.62), (-0.24, -0.80), (-0.28, -0.96)]
INDEX_DOWN = [(-0.12, -0.40), (-0.12, -0.52), (-0.10, -0.42), (-0.10, -0.34)]
MIDDLE_UP = [(0.00, -0.42), (0.00, -0.64), (0.00, -0.82), (0.00, -1.00)]
MIDDLE_DOWN = [(0.00, -0.42), (0.00, -0.54), (0.00, -0.44), (0.00, -0.36)]
RING_UP = [(0.11, -0.40), (0.11, -0.60), (0.11, -0.76), (0.11, -0.92)]
RING_DOWN = [(0.11, -0.40), (0.11, -0.51), (0.11, -0.42), (0.11, -0.35)]
PINKY_UP = [(0.21, -0.36), (0.21, -0.52), (0.21, -0.64), (0.21, -0.76)]
PINKY_REACH = [(0.21, -0.36), (0.24, -0.56), (0.26, -0.76), (0.28, -0.96)]
PINKY_DOWN = [(0.21, -0.36), (0.21, -0.45), (0.21, -0.38), (0.21, -0.32)]
THUMB_TUCKED = [(-0.10, -0.10), (-0.14, -0.20), (-0.10, -0.28), (-0.04, -0.32)]

# Fist scale: the middle PIP is the farthest joint.
FIST_INDEX = [(-0.22, -0.74), (-0.22, -0.96), (-0.20, -0.80), (-0.20, -0.66)]
FIST_MIDDLE = [(0.00, -0.78), (0.00, -1.00), (0.00, -0.82), (0.00, -0.68)]
FIST_RING = [(0.20, -0.74), (0.20, -0.95), (0.20, -0.80), (0.20, -0.66)]
FIST_PINKY = [(0.38, -0.66), (0.38, -0.83), (0.38, -0.70), (0.38, -0.58)]
FIST_FINGERS = (FIST_INDEX, FIST_MIDDLE, FIST_RING, FIST_PINKY)

THUMB_HIGH_TUCK = [(-0.20, -0.15), (-0.22, -0.40), (-0.08, -0.70), (0.10, -0.90)]


def _pose(thumb, index, middle, ring, pinky) -> list[tuple[float, float]]:
    return [(0.0, 0.0), *thumb, *index, *middle, *ring, *pinky]


LETTER_POSES = {
    "A": FIST_THUMB_SIDE,
    "B": OPEN_PALM,
    "C": _pose(
        [(-0.10, -0.10), (-0.22, -0.20), (-0.32, -0.32), (-0.40, -0.45)],
        INDEX_UP, MIDDLE_UP, RING_UP, PINKY_UP,
    ),
    "D": _pose(THUMB_TUCKED, INDEX_REACH, MIDDLE_DOWN, RING_DOWN, PINKY_DOWN),
    "E": _pose(
        [(-0.20, -0.15), (-0.30, -0.32), (-0.18, -0.50), (0.00, -0.55)],
        *FIST_FINGERS,
    ),
    "F": _pose(
        [(-0.10, -0.10), (-0.16, -0.22), (-0.20, -0.30), (-0.18, -0.40)],
        [(-0.12, -0.40), (-0.16, -0.55), (-0.18, -0.50), (-0.16, -0.42)],
        MIDDLE_UP, RING_UP, PINKY_UP,
    ),
    "G": _pose(
        [(-0.10, -0.10), (-0.20, -0.18), (-0.32, -0.24), (-0.44, -0.28)],
        [(-0.12, -0.40), (-0.36, -0.48), (-0.58, -0.54), (-0.80, -0.60)],
        MIDDLE_DOWN, RING_DOWN, PINKY_DOWN,
    ),
    "H": _pose(
        THUMB_TUCKED,
        [(-0.12, -0.40), (-0.34, -0.50), (-0.54, -0.58), (-0.72, -0.66)],
        [(0.00, -0.42), (-0.28, -0.48), (-0.56, -0.54), (-0.80, -0.60)],
        RING_DOWN, PINKY_DOWN,
    ),
    "I": _pose(THUMB_TUCKED, INDEX_DOWN, MIDDLE_DOWN, RING_DOWN, PINKY_REACH),
    "K": _pose(
        [(-0.10, -0.10), (-0.18, -0.22), (-0.16, -0.38), (-0.10, -0.52)],
        INDEX_TILTED, MIDDLE_UP, RING_DOWN, PINKY_DOWN,
    ),
    "L": _pose(
        [(-0.10, -0.10), (-0.24, -0.20), (-0.38, -0.26), (-0.52, -0.30)],
        INDEX_REACH, MIDDLE_DOWN, RING_DOWN, PINKY_DOWN,
    ),
    "M": _pose(THUMB_HIGH_TUCK, *FIST_FINGERS),
    "N": _pose(
        THUMB_HIGH_TUCK,
        FIST_INDEX, FIST_MIDDLE,
        [(0.20, -0.74), (0.20, -0.95), (0.20, -0.75), (0.20, -0.50)],
        FIST_PINKY,
    ),
    "O": _pose(
        [(-0.10, -0.10), (-0.22, -0.26), (-0.34, -0.56), (-0.40, -0.86)],
        [(-0.12, -0.40), (-0.20, -0.70), (-0.30, -0.86), (-0.36, -0.84)],
        [(0.00, -0.42), (-0.06, -0.76), (-0.22, -0.94), (-0.352, -0.936)],
        RING_DOWN, PINKY_DOWN,
    ),
    "P": _pose(
        [(-0.10, -0.10), (-0.20, -0.18), (-0.26, -0.22), (-0.30, -0.24)],
        [(-0.12, -0.40), (-0.30, -0.32), (-0.46, -0.24), (-0.60, -0.16)],
        [(0.00, -0.42), (-0.26, -0.50), (-0.54, -0.56), (-0.80, -0.60)],
        RING_DOWN, PINKY_DOWN,
    ),
    "Q": _pose(
        [(-0.10, -0.08), (-0.28, -0.16), (-0.36, -0.19), (-0.40, -0.20)],
        [(-0.12, -0.40), (-0.40, -0.36), (-0.68, -0.32), (-0.96, -0.28)],
        MIDDLE_DOWN, RING_DOWN, PINKY_DOWN,
    ),
    "R": _pose(
        THUMB_TUCKED,
        [(-0.12, -0.40), (-0.08, -0.60), (-0.02, -0.78), (0.04, -0.94)],
        MIDDLE_UP, RING_DOWN, PINKY_DOWN,
    ),
    "S": _pose(
        [(-0.20, -0.15), (-0.30, -0.35), (-0.18, -0.64), (0.02, -0.82)],
        *FIST_FINGERS,
    ),
    "T": _pose(
        [(-0.20, -0.15), (-0.32, -0.38), (-0.26, -0.66), (-0.14, -0.88)],
        *FIST_FINGERS,
    ),
    "U": _pose(THUMB_TUCKED, INDEX_UP, MIDDLE_UP, RING_DOWN, PINKY_DOWN),
    "V": _pose(THUMB_TUCKED, INDEX_TILTED, MIDDLE_UP, RING_DOWN, PINKY_DOWN),
    "W": _pose(
        THUMB_TUCKED, INDEX_TILTED, MIDDLE_UP,
        [(0.11, -0.40), (0.15, -0.60), (0.19, -0.75), (0.23, -0.88)],
        PINKY_DOWN,
    ),
    "X": _pose(
        [(-0.20, -0.15), (-0.30, -0.32), (-0.34, -0.42), (-0.34, -0.50)],
        [(-0.22, -0.74), (-0.22, -0.96), (-0.18, -0.90), (-0.16, -0.80)],
        FIST_MIDDLE, FIST_RING, FIST_PINKY,
    ),
    "Y": _pose(
        [(-0.10, -0.10), (-0.30, -0.16), (-0.60, -0.20), (-0.92, -0.24)],
        INDEX_DOWN, MIDDLE_DOWN, RING_DOWN, PINKY_REACH,
    ),
}


@pytest.fixture
def letter_poses() -> dict[str, list[tuple[float, float]]]:
    return LETTER_POSES


@pytest.fixture(params=sorted(LETTER_POSES))
def letter_hand(request) -> tuple[str, np.ndarray]:
    return request.param, make_hand(LETTER_POSES[request.param])
