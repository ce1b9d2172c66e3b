"""
fingerspelling.py – Single-frame geometric classifier for static ASL letters.

Works on the wrist-centred, unit-reach ``(63,)`` vectors produced by
:func:`signstream.landmarks.normalize_landmarks`.  Every letter owns a short
list of boolean geometric checks built from a handful of primitives
(distances, finger open / extended, thumb placement).  The score of a letter
is the fraction of its checks that hold:

  score(L) = |{c ∈ checks(L) : c(hand)}| / |checks(L)|

The best-scoring letter wins (ties go to the earlier letter in
:data:`LETTER_RULES`) if it reaches ``min_confidence``.

J and Z need a trajectory and are not part of the table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Mapping

import numpy as np

from signstream.config import MIN_SIGN_CONFIDENCE
from signstream.landmarks import (
    FINGER_MCPS,
    FINGER_PIPS,
    FINGER_TIPS,
    INDEX_DIP,
    INDEX_MCP,
    INDEX_PIP,
    INDEX_TIP,
    MIDDLE_MCP,
    MIDDLE_PIP,
    MIDDLE_TIP,
    NUM_COORDS,
    NUM_HAND_JOINTS,
    PINKY_TIP,
    RING_MCP,
    RING_TIP,
    THUMB_CMC,
    THUMB_TIP,
    WRIST_IDX,
)
from signstream.types import ClassificationResult

logger = logging.getLogger(__name__)

# Finger ids
THUMB, INDEX, MIDDLE, RING, PINKY = range(5)

MOTION_LETTERS = ("J", "Z")
_ZERO_EPS = 1e-5

# ── Primitives ───────────────────────────────────────────────────────────────
# ``pts`` is always the normalised hand reshaped to (21, 3).


def distance(pts: np.ndarray, i: int, j: int) -> float:
    return float(np.linalg.norm(pts[i] - pts[j]))


def finger_open(pts: np.ndarray, f: int) -> bool:
    """Thumb: tip far from CMC.  Others: tip beyond the PIP and off the MCP."""
    if f == THUMB:
        return distance(pts, THUMB_TIP, THUMB_CMC) > 0.40
    tip_dist = distance(pts, FINGER_TIPS[f], WRIST_IDX)
    pip_dist = distance(pts, FINGER_PIPS[f], WRIST_IDX)
    return tip_dist > pip_dist * 0.85 and distance(pts, FINGER_TIPS[f], FINGER_MCPS[f]) > 0.32


def extended(pts: np.ndarray, f: int, threshold: float = 0.35) -> bool:
    return distance(pts, FINGER_TIPS[f], FINGER_MCPS[f]) > threshold


def curl_ratio(pts: np.ndarray, f: int) -> float:
    """Continuous curl in [0, 1]: 0 = tip at or beyond the reference joint.

    The reference is the finger's MCP for index..pinky and the thumb MCP
    for the thumb.
    """
    d_tip = distance(pts, FINGER_TIPS[f], WRIST_IDX)
    d_ref = distance(pts, FINGER_MCPS[f], WRIST_IDX)
    if d_ref < _ZERO_EPS:
        return 0.0
    return float(np.clip(1.0 - d_tip / d_ref, 0.0, 1.0))


def tips_touching(pts: np.ndarray, i: int, j: int, threshold: float = 0.18) -> bool:
    return distance(pts, i, j) < threshold


def fingers_spread(pts: np.ndarray, f1: int, f2: int, threshold: float = 0.20) -> bool:
    return distance(pts, FINGER_TIPS[f1], FINGER_TIPS[f2]) > threshold


def thumb_is_lateral(pts: np.ndarray) -> bool:
    return abs(pts[THUMB_TIP, 0] - pts[INDEX_MCP, 0]) > 0.15


def thumb_across_fingers(pts: np.ndarray) -> bool:
    tx = pts[THUMB_TIP, 0]
    lo = min(pts[INDEX_MCP, 0], pts[RING_MCP, 0])
    hi = max(pts[INDEX_MCP, 0], pts[RING_MCP, 0])
    return lo - 0.05 < tx < hi + 0.05


# ── Named checks ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Check:
    """A named boolean predicate over the (21, 3) normalised hand."""

    name: str
    fn: Callable[[np.ndarray], bool]

    def __call__(self, pts: np.ndarray) -> bool:
        return bool(self.fn(pts))

    def __invert__(self) -> "Check":
        fn = self.fn
        return Check(f"not {self.name}", lambda pts: not fn(pts))

    def __or__(self, other: "Check") -> "Check":
        a, b = self.fn, other.fn
        return Check(f"{self.name} or {other.name}", lambda pts: a(pts) or b(pts))


_FINGER_NAMES = ("thumb", "index", "middle", "ring", "pinky")


def is_open(f: int) -> Check:
    return Check(f"{_FINGER_NAMES[f]} open", lambda pts: finger_open(pts, f))


def is_closed(f: int) -> Check:
    return ~is_open(f)


def is_extended(f: int, threshold: float = 0.35) -> Check:
    return Check(
        f"{_FINGER_NAMES[f]} extended>{threshold}",
        lambda pts: extended(pts, f, threshold),
    )


def touching(i: int, j: int, threshold: float = 0.18) -> Check:
    return Check(f"touch({i},{j})<{threshold}", lambda pts: tips_touching(pts, i, j, threshold))


def spread(f1: int, f2: int, threshold: float = 0.20) -> Check:
    return Check(
        f"spread({_FINGER_NAMES[f1]},{_FINGER_NAMES[f2]})>{threshold}",
        lambda pts: fingers_spread(pts, f1, f2, threshold),
    )


def dist_below(i: int, j: int, threshold: float) -> Check:
    return Check(f"d({i},{j})<{threshold}", lambda pts: distance(pts, i, j) < threshold)


def dist_above(i: int, j: int, threshold: float) -> Check:
    return Check(f"d({i},{j})>{threshold}", lambda pts: distance(pts, i, j) > threshold)


LATERAL = Check("thumb lateral", thumb_is_lateral)
ACROSS = Check("thumb across", thumb_across_fingers)

_ALL_CLOSED = (is_closed(INDEX), is_closed(MIDDLE), is_closed(RING), is_closed(PINKY))
_ALL_OPEN = (is_open(INDEX), is_open(MIDDLE), is_open(RING), is_open(PINKY))


def _y(pts: np.ndarray, i: int) -> float:
    return float(pts[i, 1])


def _x(pts: np.ndarray, i: int) -> float:
    return float(pts[i, 0])


INDEX_HORIZONTAL = Check(
    "index horizontal",
    lambda pts: abs(_x(pts, INDEX_TIP) - _x(pts, INDEX_MCP)) > abs(_y(pts, INDEX_TIP) - _y(pts, INDEX_MCP)),
)
INDEX_VERTICAL = Check(
    "index vertical",
    lambda pts: abs(_y(pts, INDEX_TIP) - _y(pts, INDEX_MCP)) > abs(_x(pts, INDEX_TIP) - _x(pts, INDEX_MCP)),
)
INDEX_POINTS_DOWN = Check(
    "index points down",
    lambda pts: _y(pts, INDEX_TIP) - _y(pts, INDEX_MCP) > 0.08,
)
THUMB_TUCKED_HIGH = Check(
    "middle tip below thumb tip",
    lambda pts: _y(pts, MIDDLE_TIP) - _y(pts, THUMB_TIP) > 0.18,
)

# ── Letter table ─────────────────────────────────────────────────────────────

LETTER_RULES: dict[str, tuple[Check, ...]] = {
    "A": (*_ALL_CLOSED, LATERAL, ~ACROSS),
    "B": (
        *_ALL_OPEN,
        ~is_extended(THUMB, 0.20),
        ~spread(INDEX, MIDDLE, 0.22),
        ~spread(MIDDLE, RING, 0.22),
    ),
    "C": (
        is_extended(THUMB, 0.20),
        dist_above(THUMB_TIP, INDEX_TIP, 0.30),
        dist_below(THUMB_TIP, INDEX_TIP, 0.80),
        ~spread(INDEX, MIDDLE, 0.30),
        ~ACROSS,
        dist_below(MIDDLE_TIP, RING_TIP, 0.30),
    ),
    "D": (
        is_open(INDEX),
        is_closed(MIDDLE), is_closed(RING), is_closed(PINKY),
        touching(THUMB_TIP, MIDDLE_TIP, 0.35) | touching(THUMB_TIP, MIDDLE_PIP, 0.35),
    ),
    "E": (
        *_ALL_CLOSED,
        ACROSS,
        Check("thumb tip level with index tip", lambda pts: _y(pts, THUMB_TIP) >= _y(pts, INDEX_TIP) - 0.12),
    ),
    "F": (
        touching(THUMB_TIP, INDEX_TIP, 0.28),
        is_open(MIDDLE), is_open(RING), is_open(PINKY),
        is_closed(INDEX),
    ),
    "G": (
        is_extended(INDEX),
        INDEX_HORIZONTAL,
        is_closed(MIDDLE), is_closed(RING), is_closed(PINKY),
        is_extended(THUMB, 0.15),
    ),
    "H": (
        is_extended(INDEX), is_extended(MIDDLE),
        is_closed(RING), is_closed(PINKY),
        ~spread(INDEX, MIDDLE, 0.25),
        INDEX_HORIZONTAL,
    ),
    "I": (
        is_closed(INDEX), is_closed(MIDDLE), is_closed(RING),
        is_open(PINKY),
        ~LATERAL,
    ),
    "K": (
        is_open(INDEX), is_open(MIDDLE),
        is_closed(RING), is_closed(PINKY),
        spread(INDEX, MIDDLE, 0.15),
        is_extended(THUMB, 0.20),
    ),
    "L": (
        is_open(INDEX),
        is_closed(MIDDLE), is_closed(RING), is_closed(PINKY),
        is_extended(THUMB, 0.25),
        LATERAL,
        INDEX_VERTICAL,
    ),
    "M": (
        *_ALL_CLOSED,
        LATERAL,
        ACROSS,
        THUMB_TUCKED_HIGH,
        Check("ring tip level with middle tip", lambda pts: abs(_y(pts, RING_TIP) - _y(pts, MIDDLE_TIP)) < 0.12),
    ),
    "N": (
        *_ALL_CLOSED,
        LATERAL,
        ACROSS,
        THUMB_TUCKED_HIGH,
        Check("ring tip below middle tip", lambda pts: _y(pts, RING_TIP) - _y(pts, MIDDLE_TIP) > 0.15),
    ),
    "O": (
        dist_below(THUMB_TIP, INDEX_TIP, 0.28),
        dist_below(THUMB_TIP, MIDDLE_TIP, 0.35),
        ~ACROSS,
    ),
    "P": (
        is_extended(INDEX), is_extended(MIDDLE),
        is_closed(RING), is_closed(PINKY),
        INDEX_POINTS_DOWN,
    ),
    "Q": (
        is_extended(INDEX),
        INDEX_POINTS_DOWN,
        is_closed(MIDDLE), is_closed(RING), is_closed(PINKY),
    ),
    "R": (
        is_extended(INDEX), is_extended(MIDDLE),
        is_closed(RING), is_closed(PINKY),
        dist_below(INDEX_TIP, MIDDLE_TIP, 0.15),
        Check(
            "index and middle crossed",
            lambda pts: distance(pts, INDEX_TIP, MIDDLE_TIP) < distance(pts, INDEX_MCP, MIDDLE_MCP) - 0.02,
        ),
    ),
    "S": (
        *_ALL_CLOSED,
        ACROSS,
        dist_below(THUMB_TIP, MIDDLE_PIP, 0.30),
        Check("thumb tip near middle tip height", lambda pts: _y(pts, MIDDLE_TIP) - _y(pts, THUMB_TIP) < 0.18),
        Check(
            "thumb nearer middle pip than index pip",
            lambda pts: distance(pts, THUMB_TIP, MIDDLE_PIP) < distance(pts, THUMB_TIP, INDEX_PIP) + 0.02,
        ),
    ),
    "T": (
        *_ALL_CLOSED,
        ACROSS,
        dist_below(THUMB_TIP, INDEX_PIP, 0.20),
        Check(
            "thumb nearer index pip than middle pip",
            lambda pts: distance(pts, THUMB_TIP, INDEX_PIP) < distance(pts, THUMB_TIP, MIDDLE_PIP) - 0.02,
        ),
    ),
    "U": (
        is_open(INDEX), is_open(MIDDLE),
        is_closed(RING), is_closed(PINKY),
        dist_below(INDEX_TIP, MIDDLE_TIP, 0.20),
        Check(
            "index and middle parallel",
            lambda pts: distance(pts, INDEX_TIP, MIDDLE_TIP) >= distance(pts, INDEX_MCP, MIDDLE_MCP) - 0.02,
        ),
    ),
    "V": (
        is_open(INDEX), is_open(MIDDLE),
        is_closed(RING), is_closed(PINKY),
        dist_above(INDEX_TIP, MIDDLE_TIP, 0.18),
        spread(INDEX, MIDDLE, 0.18),
    ),
    "W": (
        is_open(INDEX), is_open(MIDDLE), is_open(RING),
        is_closed(PINKY),
        spread(INDEX, MIDDLE, 0.15),
        spread(MIDDLE, RING, 0.15),
    ),
    "X": (
        dist_above(INDEX_PIP, WRIST_IDX, 0.30),
        Check("index tip hooked", lambda pts: _y(pts, INDEX_TIP) > _y(pts, INDEX_DIP) - 0.05),
        is_closed(MIDDLE), is_closed(RING), is_closed(PINKY),
        is_closed(INDEX),
        ~ACROSS,
    ),
    "Y": (
        is_extended(THUMB, 0.25),
        LATERAL,
        is_closed(INDEX), is_closed(MIDDLE), is_closed(RING),
        is_open(PINKY),
        dist_above(THUMB_TIP, PINKY_TIP, 0.50),
    ),
}

SUPPORTED_LETTERS: tuple[str, ...] = tuple(LETTER_RULES)


def _as_points(vector: np.ndarray) -> np.ndarray:
    return np.asarray(vector, dtype=np.float64).reshape(NUM_HAND_JOINTS, NUM_COORDS)


def is_degenerate(vector: np.ndarray) -> bool:
    """True when every coordinate is within 1e-5 of zero."""
    return bool(np.all(np.abs(np.asarray(vector)) < _ZERO_EPS))


# ── FingerspellingClassifier ─────────────────────────────────────────────────


class FingerspellingClassifier:
    """Score every letter in *rules* and return the best one.

    Parameters
    ----------
    min_confidence : float
        Minimum fraction of satisfied checks for a letter to be reported.
    rules : mapping of letter → checks
        Defaults to :data:`LETTER_RULES`.  Iteration order is the tie-break
        order.
    """

    def __init__(
        self,
        min_confidence: float = MIN_SIGN_CONFIDENCE,
        rules: Mapping[str, tuple[Check, ...]] | None = None,
    ) -> None:
        self.min_confidence = min_confidence
        self.rules = dict(LETTER_RULES if rules is None else rules)

    def scores(self, vector: np.ndarray) -> dict[str, float]:
        """Per-letter fraction of satisfied checks for a ``(63,)`` vector."""
        pts = _as_points(vector)
        return {
            letter: sum(check(pts) for check in checks) / len(checks)
            for letter, checks in self.rules.items()
        }

    def classify(
        self,
        vector: np.ndarray,
        min_confidence: float | None = None,
    ) -> ClassificationResult:
        """Classify one normalised hand.

        Returns
        -------
        ClassificationResult
            ``label`` is ``None`` when the input is degenerate (confidence
            0.0) or when the best score is below the threshold (confidence
            = best score).
        """
        threshold = self.min_confidence if min_confidence is None else min_confidence
        if is_degenerate(vector):
            return ClassificationResult(None, 0.0)

        scores = self.scores(vector)
        # max() keeps the first of equal maxima, i.e. table order.
        best = max(scores, key=scores.__getitem__)
        confidence = float(scores[best])

        if confidence < threshold:
            logger.debug("No confident letter (best %s=%.2f)", best, confidence)
            return ClassificationResult(None, confidence)
        return ClassificationResult(best, confidence)

    def explain(self, vector: np.ndarray, letter: str) -> dict[str, bool]:
        """Outcome of each check of *letter*, keyed by check name."""
        pts = _as_points(vector)
        return {check.name: check(pts) for check in self.rules[letter]}
