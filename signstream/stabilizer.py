"""
stabilizer.py – Turn noisy per-frame labels into change-driven emissions.

One state machine, two policies:

* ``SIGN_POLICY`` – window of 1: the latest letter is emitted when it
  differs from the last emission or more than 800 ms have passed.
* ``EMOTION_POLICY`` – window of 8: the majority label of the window (mean
  confidence of its votes) is emitted when it changes or at least every
  3000 ms.

:func:`advance` is pure; :class:`Stabilizer` keeps the state for one stream
and is meant for sequential use from a single worker thread.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, replace

from signstream.config import (
    EMOTION_EMIT_INTERVAL_MS,
    EMOTION_WINDOW,
    NEUTRAL_LABEL,
    SIGN_DEBOUNCE_MS,
)
from signstream.types import ClassificationResult, PredictionRecord


@dataclass(frozen=True)
class StabilizerPolicy:
    """Emission policy.

    Attributes
    ----------
    window : int
        History capacity (1 = latest result only, no vote).
    interval_ms : int
        Re-emit the current label after this long even without a change.
    inclusive_interval : bool
        Re-emit at ``elapsed >= interval_ms`` instead of ``elapsed > interval_ms``.
    default_label : str or None
        Smoothed label reported for an empty window.
    """

    window: int
    interval_ms: int
    inclusive_interval: bool = False
    default_label: str | None = None

    def __post_init__(self) -> None:
        if self.window < 1:
            raise ValueError(f"window must be >= 1, got {self.window}")


SIGN_POLICY = StabilizerPolicy(window=1, interval_ms=SIGN_DEBOUNCE_MS)
EMOTION_POLICY = StabilizerPolicy(
    window=EMOTION_WINDOW,
    interval_ms=EMOTION_EMIT_INTERVAL_MS,
    inclusive_interval=True,
    default_label=NEUTRAL_LABEL,
)


@dataclass(frozen=True)
class StabilizerState:
    history: tuple[PredictionRecord, ...] = ()
    last_emitted: str | None = None
    last_emit_ms: int | None = None
    last_raw: str | None = None
    last_raw_ms: int | None = None

    @property
    def awaiting_first(self) -> bool:
        return self.last_emit_ms is None


def majority(
    history: tuple[PredictionRecord, ...],
    default_label: str | None = NEUTRAL_LABEL,
) -> ClassificationResult:
    """Most frequent label in *history* with the mean confidence of its votes.

    Equal counts resolve to the label seen first in the window.
    """
    if not history:
        return ClassificationResult(default_label, 0.0)

    votes = Counter(r.label for r in history)
    best = max(votes, key=votes.__getitem__)  # first max in insertion order
    confs = [r.confidence for r in history if r.label == best]
    return ClassificationResult(best, sum(confs) / len(confs))


def _interval_elapsed(policy: StabilizerPolicy, state: StabilizerState, now_ms: int) -> bool:
    if state.last_emit_ms is None:
        return True
    elapsed = now_ms - state.last_emit_ms
    if policy.inclusive_interval:
        return elapsed >= policy.interval_ms
    return elapsed > policy.interval_ms


def advance(
    policy: StabilizerPolicy,
    state: StabilizerState,
    result: ClassificationResult | None,
    now_ms: int,
) -> tuple[StabilizerState, ClassificationResult | None]:
    """Feed one raw result; return the new state and the emission, if any.

    Results without a label are dropped and leave *state* untouched.
    """
    if result is None or result.label is None:
        return state, None

    record = PredictionRecord(result.label, float(result.confidence))
    history = (state.history + (record,))[-policy.window:]
    state = replace(state, history=history, last_raw=result.label, last_raw_ms=now_ms)

    smoothed = majority(history, policy.default_label)
    if smoothed.label != state.last_emitted or _interval_elapsed(policy, state, now_ms):
        state = replace(state, last_emitted=smoothed.label, last_emit_ms=now_ms)
        return state, smoothed
    return state, None


class Stabilizer:
    """Stateful wrapper around :func:`advance` for one stream."""

    def __init__(self, policy: StabilizerPolicy) -> None:
        self.policy = policy
        self._state = StabilizerState()

    @property
    def state(self) -> StabilizerState:
        return self._state

    def push(self, result: ClassificationResult | None, now_ms: int) -> ClassificationResult | None:
        self._state, emission = advance(self.policy, self._state, result, now_ms)
        return emission

    def smoothed(self) -> ClassificationResult:
        return majority(self._state.history, self.policy.default_label)

    def reset(self) -> None:
        self._state = StabilizerState()
