"""Console rendering of metrics and predictions."""

from typing import Any, List, Optional, Tuple

from rich import box
from rich.console import Console
from rich.table import Table

from .evaluation import (
    BinaryClassificationMetrics,
    ClusteringMetrics,
    Metrics,
    MulticlassClassificationMetrics,
    RegressionMetrics,
)
from .model import (
    BinaryPrediction,
    ClusterPrediction,
    MulticlassPrediction,
    RegressionPrediction,
)


def _fixed(value: Optional[float], digits: int) -> str:
    if value is None:
        return "-"
    return f"{value:.{digits}f}"


def metric_rows(metrics: Metrics) -> List[Tuple[str, str]]:
    """Metric names paired with their display strings."""
    if isinstance(metrics, RegressionMetrics):
        return [
            ("RSquared Score", _fixed(metrics.r_squared, 2)),
            ("Root Mean Squared Error", _fixed(metrics.rmse, 2)),
            ("Mean Absolute Error", _fixed(metrics.mae, 2)),
        ]
    if isinstance(metrics, BinaryClassificationMetrics):
        return [
            ("Accuracy", f"{metrics.accuracy:.2%}"),
            ("Auc", f"{metrics.auc:.2%}"),
            ("F1Score", f"{metrics.f1_score:.2%}"),
            ("LogLoss", _fixed(metrics.log_loss, 3)),
        ]
    if isinstance(metrics, MulticlassClassificationMetrics):
        return [
            ("MicroAccuracy", _fixed(metrics.micro_accuracy, 3)),
            ("MacroAccuracy", _fixed(metrics.macro_accuracy, 3)),
            ("LogLoss", _fixed(metrics.log_loss, 3)),
            ("LogLossReduction", _fixed(metrics.log_loss_reduction, 3)),
        ]
    if isinstance(metrics, ClusteringMetrics):
        return [
            ("Average Distance", _fixed(metrics.average_distance, 4)),
            ("Davies Bouldin Index", _fixed(metrics.davies_bouldin_index, 4)),
            (
                "Normalized Mutual Information",
                _fixed(metrics.normalized_mutual_information, 4),
            ),
        ]
    raise TypeError(f"Unsupported metrics type: {type(metrics).__name__}")


def metrics_table(metrics: Metrics, title: str = "Model quality metrics") -> Table:
    table = Table(box=box.SIMPLE, title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="yellow", justify="right")
    for name, value in metric_rows(metrics):
        table.add_row(name, value)
    return table


def format_prediction(prediction: Any) -> str:
    if isinstance(prediction, ClusterPrediction):
        distances = " ".join(f"{d:.4f}" for d in prediction.distances)
        return f"Cluster: {prediction.cluster_id} | Distances: {distances}"
    if isinstance(prediction, RegressionPrediction):
        return f"Predicted: {prediction.score:.4f}"
    if isinstance(prediction, BinaryPrediction):
        verdict = "Positive" if prediction.predicted_label else "Negative"
        return f"Prediction: {verdict} | Probability: {prediction.probability:.4f}"
    if isinstance(prediction, MulticlassPrediction):
        return (
            f"Prediction: {prediction.predicted_label} | "
            f"Confidence: {prediction.confidence:.4f}"
        )
    raise TypeError(f"Unsupported prediction type: {type(prediction).__name__}")


def cluster_table(summary: dict) -> Table:
    """Size and share per cluster, from ``FittedKMeans.cluster_summary``."""
    table = Table(box=box.SIMPLE, title="Clusters")
    table.add_column("Cluster", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Pct", justify="right")
    for cid, stats in sorted(summary.items()):
        table.add_row(str(cid), str(stats["size"]), f"{stats['pct']:.1f}%")
    return table


def print_metrics(
    metrics: Metrics,
    console: Optional[Console] = None,
    title: str = "Model quality metrics",
):
    (console or Console()).print(metrics_table(metrics, title=title))
