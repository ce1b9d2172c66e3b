"""
types.py – Result and event records shared by both streams.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

SIGN_STREAM = "sign"
EMOTION_STREAM = "emotion"


@dataclass(frozen=True)
class ClassificationResult:
    """Per-frame classifier output.

    ``label`` is ``None`` when no class cleared the minimum confidence; the
    best score is still carried in ``confidence`` for diagnostics.
    """

    label: str | None
    confidence: float

    @property
    def has_label(self) -> bool:
        return self.label is not None


@dataclass(frozen=True)
class PredictionRecord:
    label: str
    confidence: float


@dataclass(frozen=True)
class StreamEvent:
    """One emission delivered to the output boundary."""

    stream: str
    label: str
    confidence: np.float32 = field(default_factory=lambda: np.float32(0.0))
    timestamp_ms: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", np.float32(self.confidence))
