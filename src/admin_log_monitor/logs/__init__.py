"""Log monitoring core: normalize, filter, page, tail, export and stats."""

from .export import AuditExporter, ExportResult, build_csv, export_filename, write_export
from .filters import apply_filters, count_by_level
from .live_tail import LiveTailController
from .metrics import DashboardMetricsFeed
from .monitor import LogMonitor, PaneState
from .normalizer import normalize, normalize_many, normalize_window
from .pagination import PageRequest, PaginationController
from .polling import IntervalPoller, PollTicket
from .stats import StatsAggregator
from .view_state import TabState, ViewState, initial_view_state

__all__ = [
    "AuditExporter",
    "DashboardMetricsFeed",
    "ExportResult",
    "IntervalPoller",
    "LiveTailController",
    "LogMonitor",
    "PageRequest",
    "PaginationController",
    "PaneState",
    "PollTicket",
    "StatsAggregator",
    "TabState",
    "ViewState",
    "apply_filters",
    "build_csv",
    "count_by_level",
    "export_filename",
    "initial_view_state",
    "normalize",
    "normalize_many",
    "normalize_window",
    "write_export",
]
