"""
config.py – Global thresholds, intervals and asset names for the pipeline.
"""

from __future__ import annotations

from pathlib import Path

# ── Sign stream ──────────────────────────────────────────────────────────────

MIN_SIGN_CONFIDENCE = 0.55
SIGN_DEBOUNCE_MS = 800

# ── Emotion stream ───────────────────────────────────────────────────────────

NUM_BLENDSHAPES = 52
EMOTION_WINDOW = 8
EMOTION_EMIT_INTERVAL_MS = 3000
NEUTRAL_LABEL = "neutral"

# Used when the label asset cannot be read.
FALLBACK_EMOTION_LABELS: list[str] = [
    "angry", "confused", "down", "happy", "neutral", "questioning",
]

# ── Assets ───────────────────────────────────────────────────────────────────

MODEL_DIR = Path("models")
HAND_LANDMARKER_MODEL = "hand_landmarker.task"
FACE_LANDMARKER_MODEL = "face_landmarker.task"
EMOTION_MODEL = "emotion_classifier.pt"
EMOTION_LABELS_FILE = Path(__file__).resolve().parent / "assets" / "emotion_labels.json"

TASK_MODEL_URLS: dict[str, str] = {
    HAND_LANDMARKER_MODEL: (
        "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
        "hand_landmarker/float16/latest/hand_landmarker.task"
    ),
    FACE_LANDMARKER_MODEL: (
        "https://storage.googleapis.com/mediapipe-models/face_landmarker/"
        "face_landmarker/float16/latest/face_landmarker.task"
    ),
}

# MediaPipe detector settings (one hand, one face)
MIN_DETECTION_CONFIDENCE = 0.5
MIN_PRESENCE_CONFIDENCE = 0.5
MIN_TRACKING_CONFIDENCE = 0.5
