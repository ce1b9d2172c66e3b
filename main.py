#!/usr/bin/env python3
"""
main.py – SignStream webcam runner.

Pipeline:
  Webcam  ──►  CaptureSession (worker thread)  ──►  sign / emotion events  ──►  stdout / overlay

Usage
-----
    python main.py                          # default webcam
    python main.py --camera 1               # different camera index
    python main.py --rotate 90              # camera mounted sideways
    python main.py --emotion-model models/emotion_classifier.onnx
    python main.py --download-models        # fetch MediaPipe .task assets first
    python main.py --no-display             # headless (e.g. SSH / CI)
"""

from __future__ import annotations

import argparse
import functools
import logging
import sys

import cv2

from signstream.config import (
    EMOTION_LABELS_FILE,
    FACE_LANDMARKER_MODEL,
    HAND_LANDMARKER_MODEL,
    MIN_SIGN_CONFIDENCE,
    MODEL_DIR,
)
from signstream.extractors import ensure_task_model
from signstream.landmarks import draw_hand, rotate_upright
from signstream.orchestrator import CaptureSession, build_orchestrator
from signstream.types import EMOTION_STREAM, SIGN_STREAM


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="SignStream – fingerspelling + emotion detector")
    p.add_argument("--camera", type=int, default=0, help="Camera device index")
    p.add_argument("--model-dir", type=str, default=str(MODEL_DIR), help="Directory with .task / scorer assets")
    p.add_argument("--emotion-model", type=str, default=None, help="Emotion scorer (.pt or .onnx)")
    p.add_argument("--labels", type=str, default=str(EMOTION_LABELS_FILE), help="Emotion labels JSON")
    p.add_argument(
        "--min-confidence",
        type=float,
        default=MIN_SIGN_CONFIDENCE,
        help="Minimum letter score to report",
    )
    p.add_argument(
        "--rotate",
        type=int,
        default=0,
        choices=[0, 90, 180, 270],
        help="Clockwise rotation applied to each frame before analysis",
    )
    p.add_argument("--download-models", action="store_true", help="Download missing MediaPipe assets")
    p.add_argument("--no-display", action="store_true", help="Headless mode – skip OpenCV window")
    p.add_argument("--verbose", action="store_true", help="Debug logging")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(name)s] %(levelname)s %(message)s",
    )

    if args.download_models:
        for name in (HAND_LANDMARKER_MODEL, FACE_LANDMARKER_MODEL):
            ensure_task_model(name, args.model_dir)

    # ── Initialise session ───────────────────────────────────────────────
    session = CaptureSession(
        factory=functools.partial(
            build_orchestrator,
            model_dir=args.model_dir,
            emotion_model=args.emotion_model,
            labels_path=args.labels,
            min_confidence=args.min_confidence,
        )
    )
    degraded = session.start()
    for note in degraded:
        print(f"[SignStream] Degraded: {note}")
    print("[SignStream] Press 'q' to quit.\n")

    last = {SIGN_STREAM: None, EMOTION_STREAM: None}

    cap = cv2.VideoCapture(args.camera)
    if not cap.isOpened():
        print(f"[SignStream] Cannot open camera {args.camera}", file=sys.stderr)
        session.stop()
        sys.exit(1)

    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                break

            frame = rotate_upright(frame, args.rotate)
            session.submit(frame.copy())  # overlay below draws on `frame`

            for event in session.events.drain():
                last[event.stream] = event
                print(f"  >> {event.stream.upper()}: {event.label}  ({event.confidence:.2f})")

            if not args.no_display:
                if session.orchestrator is not None:
                    draw_hand(frame, session.orchestrator.last_hand)

                lines = [f"Dropped frames: {session.dropped_frames}"]
                for stream, event in last.items():
                    if event is not None:
                        lines.append(f"{stream}: {event.label} {event.confidence:.2f}")
                for i, line in enumerate(lines):
                    cv2.putText(
                        frame, line,
                        (14, 22 + i * 20),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.48, (220, 220, 220), 1,
                        cv2.LINE_AA,
                    )

                cv2.imshow("SignStream", frame)
                key = cv2.waitKey(1) & 0xFF
                if key == ord("q") or key == 27:  # Q or Escape
                    break

    except KeyboardInterrupt:
        print("\n[SignStream] Interrupted.")
    finally:
        cap.release()
        session.stop()
        if not args.no_display:
            cv2.destroyAllWindows()
        print("[SignStream] Done.")


if __name__ == "__main__":
    main()
