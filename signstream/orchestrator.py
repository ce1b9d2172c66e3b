"""
orchestrator.py – Run both streams on each camera frame.

Pipeline (per frame):
  BGR frame ──► RGB (once) ──┬─► hand landmarks ─► normalise ─► letter rules ─► sign stabiliser
                             └─► blendshapes ───► emotion scorer ───────────► emotion stabiliser

Threading:
  camera thread ──put──► LatestFrameSlot ──take──► FrameWorker ──put──► EventQueue ──drain──► UI

The slot holds at most one frame; a newer frame replaces a pending one, so
the worker always processes the most recent image and never falls behind.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from pathlib import Path
from typing import Callable

import cv2
import numpy as np

from signstream.config import (
    EMOTION_LABELS_FILE,
    EMOTION_MODEL,
    FACE_LANDMARKER_MODEL,
    HAND_LANDMARKER_MODEL,
    MIN_SIGN_CONFIDENCE,
    MODEL_DIR,
)
from signstream.emotion import EmotionClassifier, load_emotion_labels, load_scorer
from signstream.extractors import (
    FaceExtractor,
    HandExtractor,
    MediaPipeFaceExtractor,
    MediaPipeHandExtractor,
)
from signstream.fingerspelling import FingerspellingClassifier
from signstream.landmarks import normalize_landmarks
from signstream.stabilizer import EMOTION_POLICY, SIGN_POLICY, Stabilizer
from signstream.types import EMOTION_STREAM, SIGN_STREAM, StreamEvent

logger = logging.getLogger(__name__)


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


# ── FrameOrchestrator ────────────────────────────────────────────────────────


class FrameOrchestrator:
    """Owns both classifiers and both stabilisers for one session.

    Parameters
    ----------
    hand_extractor, face_extractor :
        Upstream detectors; ``detect`` returns ``None`` for no detection.
    sign_classifier : FingerspellingClassifier
    emotion_classifier : EmotionClassifier
    clock : callable
        Millisecond clock used when ``process_frame`` gets no timestamp.
    """

    def __init__(
        self,
        hand_extractor: HandExtractor,
        face_extractor: FaceExtractor,
        sign_classifier: FingerspellingClassifier,
        emotion_classifier: EmotionClassifier,
        clock: Callable[[], int] = monotonic_ms,
    ) -> None:
        self.hand_extractor = hand_extractor
        self.face_extractor = face_extractor
        self.sign_classifier = sign_classifier
        self.emotion_classifier = emotion_classifier
        self.sign_stabilizer = Stabilizer(SIGN_POLICY)
        self.emotion_stabilizer = Stabilizer(EMOTION_POLICY)
        self.clock = clock

        # Last hand seen, for overlays.
        self.last_hand: np.ndarray | None = None

    def process_frame(self, bgr_frame: np.ndarray, now_ms: int | None = None) -> list[StreamEvent]:
        """Run both paths on one upright BGR frame.

        Returns at most one event per stream.  A failure in one path is
        logged and does not affect the other.
        """
        now = self.clock() if now_ms is None else now_ms
        rgb = cv2.cvtColor(bgr_frame, cv2.COLOR_BGR2RGB)

        events: list[StreamEvent] = []
        for name, step in ((SIGN_STREAM, self._sign_step), (EMOTION_STREAM, self._emotion_step)):
            try:
                event = step(rgb, now)
            except Exception:
                logger.exception("%s path failed; frame dropped for this stream", name)
                continue
            if event is not None:
                events.append(event)
        return events

    def _sign_step(self, rgb: np.ndarray, now: int) -> StreamEvent | None:
        hand = self.hand_extractor.detect(rgb)
        self.last_hand = hand
        if hand is None:
            return None

        result = self.sign_classifier.classify(normalize_landmarks(hand))
        if result.label is not None:
            logger.debug("Classified: %s  confidence=%.2f", result.label, result.confidence)

        emission = self.sign_stabilizer.push(result, now)
        if emission is None:
            return None
        return StreamEvent(SIGN_STREAM, emission.label, emission.confidence, now)

    def _emotion_step(self, rgb: np.ndarray, now: int) -> StreamEvent | None:
        if not self.emotion_classifier.available:
            return None
        blendshapes = self.face_extractor.detect(rgb)
        if blendshapes is None:
            return None

        result = self.emotion_classifier.classify(blendshapes)
        if result is None:
            return None

        emission = self.emotion_stabilizer.push(result, now)
        if emission is None:
            return None
        return StreamEvent(EMOTION_STREAM, emission.label, emission.confidence, now)

    def close(self) -> None:
        """Release extractors and the scorer; reset both stabilisers."""
        for name, resource in (
            ("hand extractor", self.hand_extractor),
            ("face extractor", self.face_extractor),
            ("emotion classifier", self.emotion_classifier),
        ):
            try:
                resource.close()
            except Exception as exc:
                logger.warning("Closing %s failed (%s).", name, exc)
        self.sign_stabilizer.reset()
        self.emotion_stabilizer.reset()


def build_orchestrator(
    model_dir: str | Path = MODEL_DIR,
    emotion_model: str | Path | None = None,
    labels_path: str | Path | None = EMOTION_LABELS_FILE,
    min_confidence: float = MIN_SIGN_CONFIDENCE,
) -> tuple[FrameOrchestrator, list[str]]:
    """Load all assets for a session.

    Returns the orchestrator and a list of components running in degraded
    mode (empty when everything loaded).
    """
    model_dir = Path(model_dir)
    degraded: list[str] = []

    hand = MediaPipeHandExtractor(model_dir / HAND_LANDMARKER_MODEL)
    if not hand.available:
        degraded.append("hand landmarker unavailable")

    face = MediaPipeFaceExtractor(model_dir / FACE_LANDMARKER_MODEL)
    if not face.available:
        degraded.append("face landmarker unavailable")

    labels, loaded = load_emotion_labels(labels_path)
    if not loaded:
        degraded.append("emotion labels: using fallback list")

    scorer = load_scorer(emotion_model or model_dir / EMOTION_MODEL, num_classes=len(labels))
    if scorer is None:
        degraded.append("emotion scorer unavailable")

    orchestrator = FrameOrchestrator(
        hand,
        face,
        FingerspellingClassifier(min_confidence=min_confidence),
        EmotionClassifier(scorer, labels),
    )
    return orchestrator, degraded


# ── Frame hand-off ───────────────────────────────────────────────────────────


class LatestFrameSlot:
    """Single-frame mailbox with keep-only-latest semantics."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._frame: np.ndarray | None = None
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def put(self, frame: np.ndarray) -> bool:
        """Offer a frame; returns ``False`` once the slot is closed."""
        with self._cond:
            if self._closed:
                return False
            if self._frame is not None:
                self.dropped += 1
            self._frame = frame
            self._cond.notify()
            return True

    def take(self, timeout: float | None = None) -> np.ndarray | None:
        """Wait for a frame; ``None`` on timeout or once closed."""
        with self._cond:
            self._cond.wait_for(lambda: self._frame is not None or self._closed, timeout)
            if self._closed:
                return None
            frame, self._frame = self._frame, None
            return frame

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._frame = None
            self._cond.notify_all()


class EventQueue:
    """Thread-safe output boundary; ``put`` never blocks the worker."""

    def __init__(self) -> None:
        self._q: queue.Queue[StreamEvent] = queue.Queue()

    def put(self, event: StreamEvent) -> None:
        self._q.put_nowait(event)

    def get(self, timeout: float | None = None) -> StreamEvent | None:
        try:
            return self._q.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        while True:
            try:
                events.append(self._q.get_nowait())
            except queue.Empty:
                return events


class FrameWorker(threading.Thread):
    """Dedicated thread: take the latest frame, process it, publish events.

    The worker owns the orchestrator's teardown: resources are released
    from :meth:`run` once the last frame is done, never while ``detect`` is
    still running.
    """

    def __init__(
        self,
        orchestrator: FrameOrchestrator,
        slot: LatestFrameSlot,
        events: EventQueue,
    ) -> None:
        super().__init__(name="signstream-worker", daemon=True)
        self.orchestrator = orchestrator
        self.slot = slot
        self.events = events
        self.processed = 0
        self._publish = threading.Lock()

    def seal(self) -> None:
        """Close the slot; nothing is published once this returns."""
        with self._publish:
            self.slot.close()

    def run(self) -> None:
        try:
            while True:
                frame = self.slot.take()
                if frame is None:
                    break
                try:
                    events = self.orchestrator.process_frame(frame)
                except Exception:
                    logger.exception("Frame processing failed")
                    events = []
                with self._publish:
                    if self.slot.closed:
                        logger.debug("Session sealed; dropping %d late event(s)", len(events))
                        break
                    for event in events:
                        self.events.put(event)
                self.processed += 1
        finally:
            self.orchestrator.close()


# ── CaptureSession ───────────────────────────────────────────────────────────


class CaptureSession:
    """Start / stop lifecycle around one orchestrator and its worker.

    Parameters
    ----------
    factory : callable
        Returns ``(orchestrator, degraded)``; defaults to
        :func:`build_orchestrator` with default assets.
    events : EventQueue or None
        Output boundary; a new queue is created when omitted.
    """

    def __init__(
        self,
        factory: Callable[[], tuple[FrameOrchestrator, list[str]]] = build_orchestrator,
        events: EventQueue | None = None,
    ) -> None:
        self.factory = factory
        self.events = events or EventQueue()
        self.degraded: list[str] = []
        self.orchestrator: FrameOrchestrator | None = None
        self._slot: LatestFrameSlot | None = None
        self._worker: FrameWorker | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._worker is not None

    @property
    def dropped_frames(self) -> int:
        return self._slot.dropped if self._slot is not None else 0

    def start(self) -> list[str]:
        """Load assets and start the worker; returns degraded components."""
        with self._lock:
            if self._worker is not None:
                return self.degraded
            self.orchestrator, self.degraded = self.factory()
            for note in self.degraded:
                logger.warning("Degraded: %s", note)
            self._slot = LatestFrameSlot()
            self._worker = FrameWorker(self.orchestrator, self._slot, self.events)
            self._worker.start()
            return self.degraded

    def submit(self, bgr_frame: np.ndarray) -> bool:
        """Hand a frame to the worker; ``False`` when the session is not running."""
        slot = self._slot
        if slot is None:
            return False
        return slot.put(bgr_frame)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop admitting frames and wait for the in-flight frame.

        No event reaches :attr:`events` after this returns.  Extractors and
        the scorer are released by the worker when it exits; if *timeout*
        expires first, that happens in the background.
        """
        with self._lock:
            if self._worker is None:
                return
            self._worker.seal()
            self._worker.join(timeout)
            if self._worker.is_alive():
                logger.warning("Worker still busy after %.1fs; resources released when it exits", timeout)
            self._worker = None
            logger.info("Capture session stopped")

    def __enter__(self) -> "CaptureSession":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
