"""
Signal-quality classifier adapter.

Wraps a pre-trained probabilistic model that maps the 19-element feature
vector (see :mod:`heartlen.features`) to class probabilities in the order
``(bad, acceptable, excellent)``.  Accepted model shapes:

* scikit-learn style – ``model.predict_proba(X) -> (1, 3)``
* Keras style        – ``model.predict(X) -> (1, 3)``
* plain callable     – ``model(features) -> (3,)``

A missing or failing model never stops the pipeline: the adapter reports
:attr:`QualityLabel.UNKNOWN` with confidence 0 and logs a warning.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence, Union

import joblib
import numpy as np

from heartlen.features import N_FEATURES
from heartlen.results import MODEL_CLASSES, QualityLabel, QualityResult

logger = logging.getLogger(__name__)

UNKNOWN_QUALITY = QualityResult(label=QualityLabel.UNKNOWN, confidence=0.0)


class ClassifierError(RuntimeError):
    """The external model could not produce a prediction."""


class QualityClassifier:
    """
    Parameters
    ----------
    model:
        Pre-trained model, or *None* until :meth:`load` succeeds.
    """

    def __init__(self, model: Any = None) -> None:
        self._model = model

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "QualityClassifier":
        """Build a classifier and load *path*; unavailable if loading fails."""
        classifier = cls()
        classifier.load(path)
        return classifier

    # ------------------------------------------------------------------
    # Model lifecycle
    # ------------------------------------------------------------------

    def load(self, path: Union[str, Path]) -> bool:
        """
        Load a joblib-serialised model from *path*.

        Returns *True* on success.  On failure the previous model (if any)
        is dropped and the classifier reports ``Unknown`` from then on.
        """
        try:
            self._model = joblib.load(path)
        except Exception as exc:
            logger.warning("Could not load quality model from %s: %s", path, exc)
            self._model = None
            return False
        logger.info("Loaded quality model from %s", path)
        return True

    @property
    def is_available(self) -> bool:
        return self._model is not None

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def predict(self, features: Sequence[float]) -> np.ndarray:
        """
        Return the three class probabilities for *features*.

        Raises
        ------
        ClassifierError
            No model is loaded, the model raised, or its output does not
            have exactly three finite entries.
        """
        if self._model is None:
            raise ClassifierError("quality model is not loaded")

        x = np.asarray(features, dtype=np.float64).reshape(1, -1)
        if x.shape[1] != N_FEATURES:
            raise ClassifierError(f"expected {N_FEATURES} features, got {x.shape[1]}")

        model = self._model
        try:
            if hasattr(model, "predict_proba"):
                output = model.predict_proba(x)
            elif hasattr(model, "predict"):
                output = model.predict(x)
            elif callable(model):
                output = model(x[0])
            else:
                raise ClassifierError(f"unsupported model type {type(model).__name__}")
            probabilities = np.asarray(output, dtype=np.float64).reshape(-1)
        except ClassifierError:
            raise
        except Exception as exc:
            raise ClassifierError(f"model inference failed: {exc}") from exc

        if probabilities.shape != (len(MODEL_CLASSES),) or not np.all(np.isfinite(probabilities)):
            raise ClassifierError(f"malformed model output with shape {np.shape(output)}")
        return probabilities

    def classify(self, features: Sequence[float]) -> QualityResult:
        """Arg-max class and its probability as a percentage, or ``Unknown``."""
        if self._model is None:
            return UNKNOWN_QUALITY
        try:
            probabilities = self.predict(features)
        except ClassifierError as exc:
            logger.warning("Quality classification failed: %s", exc)
            return UNKNOWN_QUALITY

        best = int(np.argmax(probabilities))
        return QualityResult(
            label=MODEL_CLASSES[best],
            confidence=float(probabilities[best]) * 100.0,
        )
