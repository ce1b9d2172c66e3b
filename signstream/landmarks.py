"""
landmarks.py – Hand topology, landmark normalisation and frame helpers.

A hand is a ``(21, 3)`` float array in the extractor's native coordinates
(MediaPipe 21-point convention, y grows downwards).  Before classification
it is projected into a translation- and scale-invariant frame:

  p'_j = (p_j - p_wrist) / max_k ||p_k - p_wrist||

No rotation normalisation is applied; in-plane rotation tolerance lives in
the individual letter thresholds.

Faces arrive as MediaPipe blendshape categories and are flattened into a
fixed 52-value vector (the ``_neutral`` channel is dropped).
"""

from __future__ import annotations

from typing import Iterable

import cv2
import numpy as np

from signstream.config import NUM_BLENDSHAPES

# ── Constants ────────────────────────────────────────────────────────────────

NUM_HAND_JOINTS = 21
NUM_COORDS = 3
FEATURE_DIM = NUM_HAND_JOINTS * NUM_COORDS  # 63

WRIST_IDX = 0
THUMB_CMC, THUMB_MCP, THUMB_IP, THUMB_TIP = 1, 2, 3, 4
INDEX_MCP, INDEX_PIP, INDEX_DIP, INDEX_TIP = 5, 6, 7, 8
MIDDLE_MCP, MIDDLE_PIP, MIDDLE_DIP, MIDDLE_TIP = 9, 10, 11, 12
RING_MCP, RING_PIP, RING_DIP, RING_TIP = 13, 14, 15, 16
PINKY_MCP, PINKY_PIP, PINKY_DIP, PINKY_TIP = 17, 18, 19, 20

# Per finger (thumb, index, middle, ring, pinky).  For the thumb the "PIP"
# slot is the IP joint.
FINGER_TIPS = (THUMB_TIP, INDEX_TIP, MIDDLE_TIP, RING_TIP, PINKY_TIP)
FINGER_PIPS = (THUMB_IP, INDEX_PIP, MIDDLE_PIP, RING_PIP, PINKY_PIP)
FINGER_MCPS = (THUMB_MCP, INDEX_MCP, MIDDLE_MCP, RING_MCP, PINKY_MCP)

NEUTRAL_BLENDSHAPE = "_neutral"

# 21-point hand skeleton connectivity (MediaPipe convention)
HAND_CONNECTIONS: list[tuple[int, int]] = [
    (0, 1), (1, 2), (2, 3), (3, 4),        # thumb
    (5, 6), (6, 7), (7, 8),                 # index
    (9, 10), (10, 11), (11, 12),            # middle
    (13, 14), (14, 15), (15, 16),           # ring
    (17, 18), (18, 19), (19, 20),           # pinky
    (0, 5), (5, 9), (9, 13), (13, 17),      # palm
    (0, 17),
]

_HAND_COLOUR = (255, 200, 0)
_POINT_COLOUR = (0, 255, 0)

_ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


# ── Hand landmarks ───────────────────────────────────────────────────────────


def as_hand_landmark_set(points: Iterable) -> np.ndarray:
    """Coerce *points* into a ``(21, 3)`` float32 array.

    Accepts a nested sequence / array of ``(x, y, z)`` triples or a list of
    objects exposing ``.x``, ``.y`` and ``.z`` (MediaPipe landmarks).

    Raises
    ------
    ValueError
        If the input does not hold exactly 21 three-dimensional points.
    """
    items = list(points)
    if items and hasattr(items[0], "x"):
        items = [(p.x, p.y, p.z) for p in items]
    arr = np.asarray(items, dtype=np.float32)
    if arr.shape != (NUM_HAND_JOINTS, NUM_COORDS):
        raise ValueError(
            f"expected {NUM_HAND_JOINTS}x{NUM_COORDS} hand landmarks, got shape {arr.shape}"
        )
    return arr


def normalize_landmarks(landmarks: np.ndarray) -> np.ndarray:
    """Centre a ``(21, 3)`` hand on its wrist and scale it to unit reach.

    Returns a flat ``(63,)`` vector.  When every point coincides with the
    wrist the centred (all-zero) vector is returned unscaled.
    """
    lm = np.asarray(landmarks, dtype=np.float64).reshape(NUM_HAND_JOINTS, NUM_COORDS)
    centred = lm - lm[WRIST_IDX]
    max_dist = float(np.linalg.norm(centred, axis=1).max())
    if max_dist > 0.0:
        centred = centred / max_dist
    return centred.reshape(FEATURE_DIM)


# ── Face blendshapes ─────────────────────────────────────────────────────────


def blendshapes_to_vector(categories: Iterable) -> np.ndarray:
    """Flatten blendshape scores into a ``(52,)`` float32 vector.

    *categories* is either a sequence of plain floats (already in model
    order, neutral removed) or MediaPipe ``Category`` objects with
    ``category_name`` / ``score``; in the latter case ``_neutral`` is
    skipped.  Extra entries are dropped, missing ones padded with 0.0.
    """
    scores: list[float] = []
    for cat in categories:
        if hasattr(cat, "score"):
            if getattr(cat, "category_name", None) == NEUTRAL_BLENDSHAPE:
                continue
            scores.append(float(cat.score))
        else:
            scores.append(float(cat))
        if len(scores) == NUM_BLENDSHAPES:
            break

    vec = np.zeros(NUM_BLENDSHAPES, dtype=np.float32)
    vec[: len(scores)] = scores
    return vec


# ── Frame helpers ────────────────────────────────────────────────────────────


def rotate_upright(bgr_frame: np.ndarray, degrees: int) -> np.ndarray:
    """Rotate a camera frame clockwise by 0 / 90 / 180 / 270 degrees."""
    degrees %= 360
    if degrees == 0:
        return bgr_frame
    if degrees not in _ROTATIONS:
        raise ValueError(f"rotation must be a multiple of 90 degrees, got {degrees}")
    return cv2.rotate(bgr_frame, _ROTATIONS[degrees])


def draw_hand(
    bgr_frame: np.ndarray,
    landmarks: np.ndarray | None,
    point_radius: int = 3,
    line_thickness: int = 2,
) -> np.ndarray:
    """Draw a hand skeleton (image-normalised x, y) onto *bgr_frame* in place."""
    if landmarks is None:
        return bgr_frame
    h, w = bgr_frame.shape[:2]
    pts = [(int(x), int(y)) for x, y in np.asarray(landmarks)[:, :2] * [w, h]]

    for a, b in HAND_CONNECTIONS:
        cv2.line(bgr_frame, pts[a], pts[b], _HAND_COLOUR, line_thickness)

    for pt in pts:
        cv2.circle(bgr_frame, pt, point_radius, _POINT_COLOUR, -1)

    return bgr_frame
