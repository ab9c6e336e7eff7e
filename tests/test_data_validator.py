"""Tests for data validation."""
import numpy as np
import pandas as pd
import pytest

from lift_quality.errors import SchemaError
from lift_quality.training.data_validator import (
    MIN_SAMPLES_PER_CLASS,
    MIN_TOTAL_SAMPLES,
    WARN_SAMPLES_PER_CLASS,
    WARN_TOTAL_SAMPLES,
    ValidationResult,
    validate_schema,
    validate_training_data,
)


class TestValidateSchema:
    def test_valid_labeled_table(self, corpus):
        validate_schema(corpus, labeled=True)

    def test_valid_evaluation_table(self, evaluation):
        validate_schema(evaluation, labeled=False)

    def test_missing_label_column(self, corpus):
        with pytest.raises(SchemaError, match="classe"):
            validate_schema(corpus.drop(columns=["classe"]), labeled=True)

    def test_missing_problem_id(self, evaluation):
        with pytest.raises(SchemaError, match="problem_id"):
            validate_schema(evaluation.drop(columns=["problem_id"]), labeled=False)

    def test_missing_required_identifier(self, corpus):
        with pytest.raises(SchemaError, match="user_name"):
            validate_schema(corpus.drop(columns=["user_name"]), labeled=True)

    def test_required_can_be_relaxed(self, corpus):
        validate_schema(corpus.drop(columns=["user_name"]), labeled=True, required=())

    def test_no_candidate_predictors(self):
        frame = pd.DataFrame({"user_name": ["a"], "num_window": [1], "classe": ["A"]})
        with pytest.raises(SchemaError, match="no candidate predictor"):
            validate_schema(frame, labeled=True)


class TestValidateTrainingData:
    def test_valid_data(self):
        """Enough data across all classes passes validation."""
        labels = np.repeat(np.arange(5), 200)
        result = validate_training_data(labels)
        assert result.is_valid is True
        assert result.total_samples == 1000
        assert len(result.errors) == 0
        assert len(result.warnings) == 0

    def test_empty_data(self):
        labels = np.array([], dtype=np.int32)
        result = validate_training_data(labels)
        assert result.is_valid is False
        assert result.total_samples == 0
        assert len(result.errors) >= 1

    def test_too_few_total_samples(self):
        labels = np.repeat(np.arange(5), 6)
        result = validate_training_data(labels)
        assert result.is_valid is False
        assert any("at least" in e and "labeled samples" in e for e in result.errors)

    def test_missing_class(self):
        """Every one of the five classes must be present."""
        labels = np.repeat(np.arange(4), 50)
        result = validate_training_data(labels)
        assert result.is_valid is False
        assert any("'E' has no samples" in e for e in result.errors)

    def test_too_few_per_class(self):
        labels = np.array([0] * 30 + [1] * 30 + [2] * 30 + [3] * 30 + [4] * 2)
        result = validate_training_data(labels)
        assert result.is_valid is False
        assert any("'E'" in e for e in result.errors)

    def test_unknown_label_code(self):
        labels = np.array([0, 1, 2, 3, 4, 7] * 20)
        result = validate_training_data(labels)
        assert result.is_valid is False
        assert any("unknown_7" in e for e in result.errors)

    def test_warnings_low_total(self):
        labels = np.repeat(np.arange(5), 20)
        result = validate_training_data(labels)
        assert result.is_valid is True
        assert any("noisy" in w for w in result.warnings)

    def test_warnings_low_per_class(self):
        labels = np.array([0] * 200 + [1] * 200 + [2] * 200 + [3] * 200 + [4] * 10)
        result = validate_training_data(labels)
        assert result.is_valid is True
        assert any("'E'" in w for w in result.warnings)

    def test_custom_min_samples(self):
        labels = np.repeat(np.arange(5), 6)
        result = validate_training_data(labels, min_samples=20)
        assert result.is_valid is True

    def test_class_distribution_correct(self):
        labels = np.array([0] * 10 + [1] * 20 + [2] * 30 + [3] * 40 + [4] * 50)
        result = validate_training_data(labels)
        assert result.class_distribution == {"A": 10, "B": 20, "C": 30, "D": 40, "E": 50}

    def test_raise_for_errors(self):
        result = validate_training_data(np.array([0] * 60))
        with pytest.raises(SchemaError):
            result.raise_for_errors()

    def test_thresholds_consistent(self):
        assert MIN_SAMPLES_PER_CLASS < WARN_SAMPLES_PER_CLASS
        assert MIN_TOTAL_SAMPLES < WARN_TOTAL_SAMPLES

    def test_summary_includes_info(self):
        labels = np.repeat(np.arange(5), 2)
        result = validate_training_data(labels)
        summary = result.summary()
        assert "Samples: 10" in summary
        assert "Errors:" in summary
        assert isinstance(result, ValidationResult)
