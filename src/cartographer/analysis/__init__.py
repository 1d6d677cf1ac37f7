"""
Analysis module - Post-crawl processing of the page set.

- TreeReconciler: Gap filling, parent/child linking and ordering
- SecurityClassifier: Heuristic sensitive-path flags and directory probing
- StatisticsAggregator: Histograms and discovery counts
"""

from .reconciler import TreeReconciler
from .security import SecurityClassifier
from .statistics import StatisticsAggregator, Aggregate


__all__ = [
    "TreeReconciler",
    "SecurityClassifier",
    "StatisticsAggregator",
    "Aggregate",
]
