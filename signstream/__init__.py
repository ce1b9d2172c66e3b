"""
signstream package.

Exposes the main pipeline components:
    normalize_landmarks       – wrist-centred, unit-reach hand vector
    FingerspellingClassifier  – single-frame geometric letter rules
    EmotionClassifier         – blendshape → emotion label boundary
    Stabilizer                – debounce / majority-vote emission policy
    FrameOrchestrator         – runs both streams on one frame
    CaptureSession            – worker thread + start/stop lifecycle
"""

from .emotion import EmotionClassifier
from .fingerspelling import FingerspellingClassifier
from .landmarks import normalize_landmarks
from .orchestrator import CaptureSession, FrameOrchestrator
from .stabilizer import EMOTION_POLICY, SIGN_POLICY, Stabilizer
from .types import ClassificationResult, StreamEvent

__all__ = [
    "CaptureSession",
    "ClassificationResult",
    "EMOTION_POLICY",
    "EmotionClassifier",
    "FingerspellingClassifier",
    "FrameOrchestrator",
    "SIGN_POLICY",
    "Stabilizer",
    "StreamEvent",
    "normalize_landmarks",
]
