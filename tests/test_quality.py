"""
Unit tests for the QualityClassifier adapter.
Run with:  pytest tests/test_quality.py
"""

from __future__ import annotations

import logging

import joblib
import numpy as np
import pytest

from heartlen.quality import ClassifierError, QualityClassifier
from heartlen.results import QualityLabel, QualityResult


# ---------------------------------------------------------------------------
# Stub models
# ---------------------------------------------------------------------------

class ProbaModel:
    """scikit-learn style: ``predict_proba(X) -> (1, 3)``."""

    def __init__(self, probabilities):
        self.probabilities = probabilities
        self.seen = None

    def predict_proba(self, X):
        self.seen = X
        return np.array([self.probabilities])


class KerasLikeModel:
    def predict(self, X):
        return np.array([[0.6, 0.3, 0.1]], dtype=np.float32)


class BrokenModel:
    def predict_proba(self, X):
        raise RuntimeError("weights not initialised")


FEATURES = np.arange(19, dtype=np.float64)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestQualityClassifier:

    def test_unloaded_model_reports_unknown(self):
        clf = QualityClassifier()
        assert not clf.is_available
        assert clf.classify(FEATURES) == QualityResult(QualityLabel.UNKNOWN, 0.0)

    def test_predict_without_model_raises(self):
        with pytest.raises(ClassifierError):
            QualityClassifier().predict(FEATURES)

    def test_argmax_of_predict_proba(self):
        model = ProbaModel([0.1, 0.2, 0.7])
        result = QualityClassifier(model).classify(FEATURES)
        assert result.label is QualityLabel.EXCELLENT
        assert result.confidence == pytest.approx(70.0)
        assert model.seen.shape == (1, 19)

    def test_keras_style_predict(self):
        result = QualityClassifier(KerasLikeModel()).classify(FEATURES)
        assert result.label is QualityLabel.BAD
        assert result.confidence == pytest.approx(60.0, rel=1e-6)

    def test_plain_callable(self):
        result = QualityClassifier(lambda f: [0.2, 0.5, 0.3]).classify(FEATURES)
        assert result.label is QualityLabel.ACCEPTABLE
        assert result.confidence == pytest.approx(50.0)

    def test_failing_model_degrades_to_unknown(self, caplog):
        with caplog.at_level(logging.WARNING, logger="heartlen.quality"):
            result = QualityClassifier(BrokenModel()).classify(FEATURES)
        assert result.label is QualityLabel.UNKNOWN
        assert result.confidence == 0.0
        assert "weights not initialised" in caplog.text

    @pytest.mark.parametrize("output", [[0.5, 0.5], [[0.1, 0.2, 0.3, 0.4]], [0.1, np.nan, 0.9]])
    def test_malformed_output_degrades_to_unknown(self, output):
        result = QualityClassifier(lambda f: output).classify(FEATURES)
        assert result.label is QualityLabel.UNKNOWN

    def test_wrong_feature_count(self):
        clf = QualityClassifier(ProbaModel([0.1, 0.2, 0.7]))
        with pytest.raises(ClassifierError, match="19 features"):
            clf.predict(np.zeros(5))
        assert clf.classify(np.zeros(5)).label is QualityLabel.UNKNOWN

    def test_load_missing_file(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="heartlen.quality"):
            clf = QualityClassifier.from_path(tmp_path / "missing.pkl")
        assert not clf.is_available
        assert clf.classify(FEATURES).label is QualityLabel.UNKNOWN
        assert "Could not load quality model" in caplog.text

    def test_load_joblib_model(self, tmp_path):
        path = tmp_path / "quality.pkl"
        joblib.dump(ProbaModel([0.05, 0.9, 0.05]), path)
        clf = QualityClassifier()
        assert clf.load(path) is True
        assert clf.is_available
        assert clf.classify(FEATURES).label is QualityLabel.ACCEPTABLE

    def test_failed_reload_drops_previous_model(self, tmp_path):
        clf = QualityClassifier(ProbaModel([0.1, 0.2, 0.7]))
        assert clf.load(tmp_path / "missing.pkl") is False
        assert not clf.is_available


def test_quality_result_str():
    assert str(QualityResult()) == "--"
    assert str(QualityResult(QualityLabel.EXCELLENT, 87.25)) == "excellent (87.2%)"
