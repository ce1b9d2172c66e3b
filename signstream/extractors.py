"""
extractors.py – MediaPipe Tasks wrappers for the hand and face paths.

Both extractors take an upright RGB ``uint8`` frame and return either
``None`` (nothing detected) or a fixed-shape array:

* :class:`MediaPipeHandExtractor` → ``(21, 3)`` hand landmarks (first hand)
* :class:`MediaPipeFaceExtractor` → ``(52,)`` blendshape scores (first face)

If the ``.task`` asset or the ``mediapipe`` package is unavailable the
extractor logs a warning and stays unavailable; ``detect`` then always
returns ``None`` so the rest of the pipeline keeps running.
"""

from __future__ import annotations

import logging
import urllib.request
from pathlib import Path
from typing import Protocol

import numpy as np

from signstream.config import (
    MIN_DETECTION_CONFIDENCE,
    MIN_PRESENCE_CONFIDENCE,
    MIN_TRACKING_CONFIDENCE,
    TASK_MODEL_URLS,
)
from signstream.landmarks import as_hand_landmark_set, blendshapes_to_vector

logger = logging.getLogger(__name__)


class HandExtractor(Protocol):
    def detect(self, rgb_frame: np.ndarray) -> np.ndarray | None:
        ...

    def close(self) -> None:
        ...


class FaceExtractor(Protocol):
    def detect(self, rgb_frame: np.ndarray) -> np.ndarray | None:
        ...

    def close(self) -> None:
        ...


def _to_mp_image(rgb_frame: np.ndarray):
    import mediapipe as mp

    return mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(rgb_frame))


class MediaPipeHandExtractor:
    """Single-hand landmarker (IMAGE running mode)."""

    def __init__(self, model_path: str | Path) -> None:
        self._landmarker = None
        self._try_init(Path(model_path))

    @property
    def available(self) -> bool:
        return self._landmarker is not None

    def _try_init(self, model_path: Path) -> None:
        try:
            import mediapipe as mp

            vision = mp.tasks.vision
            options = vision.HandLandmarkerOptions(
                base_options=mp.tasks.BaseOptions(model_asset_path=str(model_path)),
                running_mode=vision.RunningMode.IMAGE,
                num_hands=1,
                min_hand_detection_confidence=MIN_DETECTION_CONFIDENCE,
                min_hand_presence_confidence=MIN_PRESENCE_CONFIDENCE,
                min_tracking_confidence=MIN_TRACKING_CONFIDENCE,
            )
            self._landmarker = vision.HandLandmarker.create_from_options(options)
            logger.info("HandLandmarker initialised from %s", model_path)
        except Exception as exc:
            logger.warning("HandLandmarker could not be initialised from %s (%s).", model_path, exc)
            self._landmarker = None

    def detect(self, rgb_frame: np.ndarray) -> np.ndarray | None:
        if self._landmarker is None:
            return None
        result = self._landmarker.detect(_to_mp_image(rgb_frame))
        if not result.hand_landmarks:
            return None
        return as_hand_landmark_set(result.hand_landmarks[0])

    def close(self) -> None:
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None


class MediaPipeFaceExtractor:
    """Single-face landmarker with blendshape output (IMAGE running mode)."""

    def __init__(self, model_path: str | Path) -> None:
        self._landmarker = None
        self._try_init(Path(model_path))

    @property
    def available(self) -> bool:
        return self._landmarker is not None

    def _try_init(self, model_path: Path) -> None:
        try:
            import mediapipe as mp

            vision = mp.tasks.vision
            options = vision.FaceLandmarkerOptions(
                base_options=mp.tasks.BaseOptions(model_asset_path=str(model_path)),
                running_mode=vision.RunningMode.IMAGE,
                num_faces=1,
                output_face_blendshapes=True,
                min_face_detection_confidence=MIN_DETECTION_CONFIDENCE,
                min_face_presence_confidence=MIN_PRESENCE_CONFIDENCE,
                min_tracking_confidence=MIN_TRACKING_CONFIDENCE,
            )
            self._landmarker = vision.FaceLandmarker.create_from_options(options)
            logger.info("FaceLandmarker initialised from %s", model_path)
        except Exception as exc:
            logger.warning("FaceLandmarker could not be initialised from %s (%s).", model_path, exc)
            self._landmarker = None

    def detect(self, rgb_frame: np.ndarray) -> np.ndarray | None:
        if self._landmarker is None:
            return None
        result = self._landmarker.detect(_to_mp_image(rgb_frame))
        if not result.face_blendshapes or result.face_blendshapes[0] is None:
            return None
        return blendshapes_to_vector(result.face_blendshapes[0])

    def close(self) -> None:
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None


# ── Model download helper ────────────────────────────────────────────────────


def ensure_task_model(name: str, model_dir: str | Path = "models") -> Path:
    """Download a MediaPipe ``.task`` asset into *model_dir* if missing.

    Returns the local path.
    """
    model_dir = Path(model_dir)
    model_dir.mkdir(parents=True, exist_ok=True)
    path = model_dir / name

    if path.exists():
        logger.debug("Already present: %s", path)
        return path

    if name not in TASK_MODEL_URLS:
        raise KeyError(f"No download URL known for {name!r}")

    logger.info("Downloading %s ...", name)
    tmp = path.with_suffix(path.suffix + ".part")
    urllib.request.urlretrieve(TASK_MODEL_URLS[name], tmp)
    tmp.rename(path)
    logger.info("Model ready: %s", path)
    return path
