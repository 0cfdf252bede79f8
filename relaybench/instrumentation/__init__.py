"""Metric rows, sample statistics and report output."""

from relaybench.instrumentation.collector import COLUMNS, MetricsCollector, MetricsRow, metrics_frame
from relaybench.instrumentation.data import BucketedData, Data
from relaybench.instrumentation.report import ResultsBook, plot_latency, rows_to_frame, write_csv
from relaybench.instrumentation.summary import MetricSummary, ScenarioSummary

__all__ = [
    "BucketedData",
    "COLUMNS",
    "Data",
    "MetricSummary",
    "MetricsCollector",
    "MetricsRow",
    "ResultsBook",
    "ScenarioSummary",
    "metrics_frame",
    "plot_latency",
    "rows_to_frame",
    "write_csv",
]
