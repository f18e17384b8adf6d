"""Terminal UI helpers for the operator-facing CLI."""

from .event_feed import OperatorEvent, OperatorEventFeed
from .log_viewer import LogViewerPanel
from .monitor_dashboard import MonitorDashboard

__all__ = ["LogViewerPanel", "MonitorDashboard", "OperatorEvent", "OperatorEventFeed"]
