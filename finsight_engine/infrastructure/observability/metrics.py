"""Prometheus metrics for analysis volume, latency and data quality"""

from prometheus_client import Counter, Histogram

from finsight_engine.domain.anomalies import AnomalySummary

# Analysis metrics
analysis_counter = Counter(
    "finsight_analysis_total",
    "Analyses completed",
    ["analysis", "confidence"],  # high | medium | low | insufficient
)

analysis_duration_histogram = Histogram(
    "finsight_analysis_duration_seconds",
    "Time spent computing one analysis",
    ["analysis"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

insufficient_data_counter = Counter(
    "finsight_insufficient_data_total",
    "Analyses that returned an insufficient-data result",
    ["analysis"],
)

# Anomaly metrics
anomaly_action_counter = Counter(
    "finsight_anomaly_actions_total",
    "Anomaly detector outcomes by recommended action",
    ["action"],  # review | flag_in_ui | none
)


def record_analysis(analysis: str, confidence: str, duration_seconds: float) -> None:
    """Record one analysis run and flag thin-data outcomes"""
    analysis_counter.labels(analysis=analysis, confidence=confidence).inc()
    analysis_duration_histogram.labels(analysis=analysis).observe(duration_seconds)

    if confidence == "insufficient":
        insufficient_data_counter.labels(analysis=analysis).inc()


def record_anomaly_summary(summary: AnomalySummary) -> None:
    for action, count in summary.by_action.items():
        if count:
            anomaly_action_counter.labels(action=action).inc(count)
