"""Tests for metric computation."""

import math

import numpy as np
import pytest

from src.ml.errors import EvaluationError
from src.ml.evaluation import (
    binary_metrics,
    clustering_metrics,
    multiclass_metrics,
    regression_metrics,
)


class TestRegressionMetrics:
    def test_perfect_fit(self):
        m = regression_metrics([1.0, 2.0, 3.0], [1.0, 2.0, 3.0])
        assert m.rmse == 0.0
        assert m.r_squared == 1.0

    def test_known_values(self):
        m = regression_metrics([2.0, 2.0, 4.0, 4.0], [1.0, 3.0, 3.0, 5.0])
        assert m.mse == pytest.approx(1.0)
        assert m.rmse == pytest.approx(1.0)
        assert m.mae == pytest.approx(1.0)
        # SS_tot = 8, SS_res = 4
        assert m.r_squared == pytest.approx(0.5)

    def test_constant_truth(self):
        assert regression_metrics([5.0, 5.0], [5.0, 5.0]).r_squared == 1.0
        assert regression_metrics([4.0, 6.0], [5.0, 5.0]).r_squared == 0.0

    def test_empty_fails(self):
        with pytest.raises(EvaluationError):
            regression_metrics([], [])

    def test_length_mismatch(self):
        with pytest.raises(EvaluationError):
            regression_metrics([1.0], [1.0, 2.0])


class TestBinaryMetrics:
    def test_perfect_ranking(self):
        m = binary_metrics([0.1, 0.2, 0.8, 0.9], [False, False, True, True])
        assert m.accuracy == 1.0
        assert m.auc == 1.0
        assert m.f1_score == 1.0

    def test_threshold_applies(self):
        m = binary_metrics([0.1, 0.6, 0.7, 0.9], [False, False, True, True], threshold=0.65)
        assert m.accuracy == 1.0
        m = binary_metrics([0.1, 0.6, 0.7, 0.9], [False, False, True, True])
        assert m.accuracy == 0.75
        assert m.precision == pytest.approx(2 / 3)
        assert m.recall == 1.0

    def test_log_loss_floors_probabilities(self):
        m = binary_metrics([0.0, 1.0], [True, False])
        assert math.isfinite(m.log_loss)
        assert m.log_loss == pytest.approx(-math.log(1e-15))

    def test_single_class_auc_undefined(self):
        with pytest.raises(EvaluationError):
            binary_metrics([0.2, 0.7], [True, True])


class TestMulticlassMetrics:
    def test_micro_and_macro(self):
        probabilities = np.array(
            [
                [0.8, 0.1, 0.1],
                [0.7, 0.2, 0.1],
                [0.6, 0.3, 0.1],
                [0.1, 0.8, 0.1],
            ]
        )
        m = multiclass_metrics(probabilities, [0, 0, 1, 1])
        assert m.micro_accuracy == pytest.approx(0.75)
        assert m.macro_accuracy == pytest.approx(0.75)

    def test_macro_weighs_classes_equally(self):
        probabilities = np.array([[0.9, 0.1]] * 4)
        m = multiclass_metrics(probabilities, [0, 0, 0, 1])
        assert m.micro_accuracy == pytest.approx(0.75)
        assert m.macro_accuracy == pytest.approx(0.5)

    def test_log_loss_reduction_against_uniform(self):
        uniform = np.full((2, 4), 0.25)
        m = multiclass_metrics(uniform, [0, 3])
        assert m.log_loss == pytest.approx(math.log(4))
        assert m.log_loss_reduction == pytest.approx(0.0)

    def test_log_loss_zero_for_certain_predictions(self):
        one_hot = np.eye(3)[[0, 2, 1]]
        assert multiclass_metrics(one_hot, [0, 2, 1]).log_loss == pytest.approx(0.0)

        hedged = np.array([[0.8, 0.1, 0.1], [0.1, 0.1, 0.8], [0.1, 0.8, 0.1]])
        assert multiclass_metrics(hedged, [0, 2, 1]).log_loss > 0

    def test_unknown_labels_skipped(self):
        probabilities = np.array([[0.9, 0.1], [0.2, 0.8]])
        m = multiclass_metrics(probabilities, [0, -1])
        assert m.micro_accuracy == 1.0

    def test_all_unknown_fails(self):
        with pytest.raises(EvaluationError):
            multiclass_metrics(np.array([[0.5, 0.5]]), [-1])


class TestClusteringMetrics:
    def test_average_distance_uses_nearest(self):
        features = np.array([[0.0], [1.0], [10.0], [11.0]])
        distances = np.array([[0.5, 9.5], [0.5, 8.5], [9.5, 0.5], [10.5, 0.5]])
        m = clustering_metrics(features, distances)
        assert m.average_distance == pytest.approx(0.5)
        assert m.davies_bouldin_index > 0
        assert m.normalized_mutual_information is None

    def test_single_cluster_has_no_dbi(self):
        features = np.array([[0.0], [1.0]])
        distances = np.array([[0.5, 3.0], [0.5, 2.0]])
        assert math.isnan(clustering_metrics(features, distances).davies_bouldin_index)

    def test_nmi_with_labels(self):
        features = np.array([[0.0], [1.0], [10.0], [11.0]])
        distances = np.array([[0.5, 9.5], [0.5, 8.5], [9.5, 0.5], [10.5, 0.5]])
        m = clustering_metrics(features, distances, ["a", "a", "b", "b"])
        assert m.normalized_mutual_information == pytest.approx(1.0)
