"""Terminal rendering of deployment results."""

from signforge.monitor.renderer import ReportRenderer

__all__ = ["ReportRenderer"]
