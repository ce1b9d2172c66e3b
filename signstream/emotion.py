"""
emotion.py – Blendshape vector → emotion label.

The scorer itself is opaque: anything with ``score(vector) -> probabilities``
satisfies :class:`EmotionScorer`.  Two backends are provided:

* **TorchEmotionScorer** – a small MLP (``52 → 64 → 32 → C``) loaded from a
  state-dict checkpoint (``.pt``).
* **OnnxEmotionScorer** – any ONNX graph with a ``(1, 52)`` float input and a
  ``(1, C)`` output, run through ONNX Runtime.

:class:`EmotionClassifier` is the boundary the pipeline talks to: it pads
the vector, calls the scorer, and maps ``argmax`` to a label name.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol, Sequence

import numpy as np
import onnxruntime as ort
import torch
import torch.nn as nn

from signstream.config import (
    EMOTION_LABELS_FILE,
    FALLBACK_EMOTION_LABELS,
    NEUTRAL_LABEL,
    NUM_BLENDSHAPES,
)
from signstream.landmarks import blendshapes_to_vector
from signstream.types import ClassificationResult

logger = logging.getLogger(__name__)


class EmotionScorer(Protocol):
    """Opaque classifier: ``(52,)`` float32 → one probability per label."""

    def score(self, vector: np.ndarray) -> np.ndarray:
        ...


# ── Labels ───────────────────────────────────────────────────────────────────


def load_emotion_labels(path: str | Path | None = None) -> tuple[list[str], bool]:
    """Read ``{"labels": [...]}`` from *path*.

    Returns
    -------
    labels : list[str]
        Loaded labels, or :data:`FALLBACK_EMOTION_LABELS` on any failure.
    loaded : bool
        ``False`` when the fallback list was used.
    """
    path = Path(path) if path is not None else EMOTION_LABELS_FILE
    try:
        with open(path, "r", encoding="utf-8") as f:
            labels = json.load(f)["labels"]
        if not labels or not all(isinstance(l, str) for l in labels):
            raise ValueError("'labels' must be a non-empty list of strings")
    except (OSError, ValueError, KeyError, TypeError) as exc:
        logger.warning("Emotion labels could not be loaded from %s (%s); using fallback.", path, exc)
        return list(FALLBACK_EMOTION_LABELS), False
    logger.info("Emotion labels: %s", labels)
    return list(labels), True


# ── Torch backend ────────────────────────────────────────────────────────────


class EmotionMLP(nn.Module):
    """Feed-forward classifier: ``(batch, 52) → (batch, num_classes)`` logits."""

    def __init__(
        self,
        num_classes: int = len(FALLBACK_EMOTION_LABELS),
        input_dim: int = NUM_BLENDSHAPES,
        hidden_dim: int = 64,
        dropout: float = 0.2,
    ) -> None:
        super().__init__()
        self.net = nn.Sequential(
            nn.Linear(input_dim, hidden_dim),
            nn.ReLU(),
            nn.Dropout(dropout),
            nn.Linear(hidden_dim, hidden_dim // 2),
            nn.ReLU(),
            nn.Linear(hidden_dim // 2, num_classes),
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.net(x)


class TorchEmotionScorer:
    """Run an :class:`EmotionMLP` in eval mode and return softmax probabilities."""

    def __init__(self, model: EmotionMLP, device: str = "cpu") -> None:
        self.device = torch.device(device)
        self.model = model.to(self.device)
        self.model.eval()

    @classmethod
    def from_checkpoint(
        cls,
        checkpoint: str | Path,
        num_classes: int,
        device: str = "cpu",
    ) -> "TorchEmotionScorer":
        ckpt = Path(checkpoint)
        if not ckpt.exists():
            raise FileNotFoundError(f"Checkpoint not found: {ckpt}")
        model = EmotionMLP(num_classes=num_classes)
        model.load_state_dict(torch.load(ckpt, map_location=device, weights_only=True))
        logger.info("Emotion MLP loaded from %s", ckpt)
        return cls(model, device=device)

    def score(self, vector: np.ndarray) -> np.ndarray:
        x = torch.from_numpy(np.asarray(vector, dtype=np.float32)).unsqueeze(0).to(self.device)
        with torch.no_grad():
            logits = self.model(x)  # (1, C)
        return torch.softmax(logits, dim=-1)[0].cpu().numpy()


# ── ONNX backend ─────────────────────────────────────────────────────────────


class OnnxEmotionScorer:
    """ONNX Runtime session over a ``(1, 52) → (1, C)`` graph.

    Parameters
    ----------
    model_path : str or Path
        Path to the ``.onnx`` file.
    softmax : bool
        Apply softmax to the output (for graphs that emit logits).
    """

    def __init__(self, model_path: str | Path, softmax: bool = False) -> None:
        self.softmax = softmax

        providers: list[str] = []
        if "CUDAExecutionProvider" in ort.get_available_providers():
            providers.append("CUDAExecutionProvider")
        providers.append("CPUExecutionProvider")

        self.session = ort.InferenceSession(str(model_path), providers=providers)
        self.input_name = self.session.get_inputs()[0].name
        logger.info("Emotion ONNX model loaded from %s (%s)", model_path, self.session.get_providers())

    def score(self, vector: np.ndarray) -> np.ndarray:
        x = np.asarray(vector, dtype=np.float32)[np.newaxis]
        out = np.asarray(self.session.run(None, {self.input_name: x})[0][0], dtype=np.float32)
        if self.softmax:
            e = np.exp(out - out.max())
            out = e / e.sum()
        return out


def load_scorer(model_path: str | Path, num_classes: int) -> EmotionScorer | None:
    """Pick a backend from the file suffix; ``None`` if loading fails."""
    path = Path(model_path)
    try:
        if path.suffix == ".onnx":
            return OnnxEmotionScorer(path)
        return TorchEmotionScorer.from_checkpoint(path, num_classes)
    except Exception as exc:
        logger.warning("Emotion scorer could not be loaded from %s (%s).", path, exc)
        return None


# ── EmotionClassifier ────────────────────────────────────────────────────────


class EmotionClassifier:
    """Vector-in / label-out boundary around an :class:`EmotionScorer`.

    A ``None`` scorer leaves the classifier unavailable: :meth:`classify`
    then returns ``None`` for every frame.
    """

    def __init__(
        self,
        scorer: EmotionScorer | None,
        labels: Sequence[str] = FALLBACK_EMOTION_LABELS,
    ) -> None:
        self.scorer = scorer
        self.labels = list(labels)

    @property
    def available(self) -> bool:
        return self.scorer is not None

    def classify(self, vector: np.ndarray) -> ClassificationResult | None:
        """Return the argmax label, or ``None`` if the scorer is missing or fails."""
        if self.scorer is None:
            return None

        vec = np.asarray(vector, dtype=np.float32).reshape(-1)
        if vec.shape != (NUM_BLENDSHAPES,):
            vec = blendshapes_to_vector(vec)

        try:
            probs = np.asarray(self.scorer.score(vec), dtype=np.float32).reshape(-1)
        except Exception as exc:
            logger.warning("Emotion inference failed (%s); frame discarded.", exc)
            return None
        if probs.size == 0:
            return None

        idx = int(np.argmax(probs))
        label = self.labels[idx] if idx < len(self.labels) else NEUTRAL_LABEL
        return ClassificationResult(label, float(probs[idx]))

    def close(self) -> None:
        self.scorer = None
