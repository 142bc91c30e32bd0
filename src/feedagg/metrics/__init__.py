"""feedagg metrics and observability.

Example:
    >>> from feedagg.metrics import IngestionMetrics
    >>> metrics = IngestionMetrics()
    >>> metrics.record_error("go-blog", "ParseError")
    >>> print(metrics.summary().errors_by_type)
    {'ParseError': 1}
"""

from feedagg.metrics.collector import IngestionMetrics, MetricsSummary

__all__ = [
    "IngestionMetrics",
    "MetricsSummary",
]
