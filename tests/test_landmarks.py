"""
tests/test_landmarks.py – normalisation, blendshape flattening, frame helpers.
"""

from __future__ import annotations

import sys
from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from signstream.landmarks import (
    FEATURE_DIM,
    as_hand_landmark_set,
    blendshapes_to_vector,
    draw_hand,
    normalize_landmarks,
    rotate_upright,
)


def _random_hand(seed: int) -> np.ndarray:
    return np.random.RandomState(seed).randn(21, 3).astype(np.float32) * 0.2 + 0.5


@pytest.mark.parametrize("seed", range(5))
def test_wrist_at_origin_and_unit_reach(seed: int) -> None:
    vec = normalize_landmarks(_random_hand(seed))
    pts = vec.reshape(21, 3)

    assert vec.shape == (FEATURE_DIM,)
    assert np.array_equal(pts[0], np.zeros(3))
    assert np.linalg.norm(pts, axis=1).max() == pytest.approx(1.0, abs=1e-6)


def test_all_points_on_wrist_stays_zero() -> None:
    hand = np.tile(np.array([0.3, 0.4, -0.1], dtype=np.float32), (21, 1))
    vec = normalize_landmarks(hand)
    assert vec.shape == (FEATURE_DIM,)
    assert not vec.any()


@pytest.mark.parametrize("k", [0.01, 0.5, 3.7, 250.0])
def test_scale_invariance(k: float) -> None:
    hand = _random_hand(7)
    np.testing.assert_allclose(normalize_landmarks(hand * k), normalize_landmarks(hand), atol=1e-5)


def test_translation_invariance() -> None:
    hand = _random_hand(3)
    shifted = hand + np.array([1.5, -2.0, 0.25], dtype=np.float32)
    np.testing.assert_allclose(normalize_landmarks(shifted), normalize_landmarks(hand), atol=1e-5)


def test_normalisation_is_pure() -> None:
    hand = _random_hand(11)
    before = hand.copy()
    a = normalize_landmarks(hand)
    b = normalize_landmarks(hand)
    assert np.array_equal(a, b)
    assert np.array_equal(hand, before)


def test_landmark_set_from_objects() -> None:
    points = [SimpleNamespace(x=i * 0.01, y=0.5, z=-0.02) for i in range(21)]
    arr = as_hand_landmark_set(points)
    assert arr.shape == (21, 3)
    assert arr[20, 0] == pytest.approx(0.20)


@pytest.mark.parametrize("shape", [(20, 3), (21, 2), (63,)])
def test_landmark_set_rejects_wrong_shape(shape) -> None:
    with pytest.raises(ValueError):
        as_hand_landmark_set(np.zeros(shape))


def test_blendshapes_skip_neutral_and_pad() -> None:
    cats = [SimpleNamespace(category_name="_neutral", score=0.99)]
    cats += [SimpleNamespace(category_name=f"bs{i}", score=0.01 * (i + 1)) for i in range(10)]
    vec = blendshapes_to_vector(cats)

    assert vec.shape == (52,)
    assert vec.dtype == np.float32
    assert vec[0] == pytest.approx(0.01)
    assert vec[9] == pytest.approx(0.10)
    assert not vec[10:].any()


def test_blendshapes_truncate_to_52() -> None:
    vec = blendshapes_to_vector([0.5] * 60)
    assert vec.shape == (52,)
    assert np.all(vec == 0.5)


def test_blendshapes_empty() -> None:
    assert not blendshapes_to_vector([]).any()


def test_rotate_upright() -> None:
    frame = np.zeros((4, 6, 3), dtype=np.uint8)
    frame[0, 0] = 255
    assert rotate_upright(frame, 0) is frame
    assert rotate_upright(frame, 90).shape == (6, 4, 3)
    assert rotate_upright(frame, 180)[3, 5, 0] == 255
    assert rotate_upright(frame, 270).shape == (6, 4, 3)
    with pytest.raises(ValueError):
        rotate_upright(frame, 45)


def test_draw_hand(open_palm) -> None:
    frame = np.zeros((120, 160, 3), dtype=np.uint8)
    draw_hand(frame, open_palm)
    assert frame.any()

    blank = np.zeros((120, 160, 3), dtype=np.uint8)
    draw_hand(blank, None)
    assert not blank.any()
