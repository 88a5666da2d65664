"""Terminal surface: argument parsing and run summaries."""

from context_packer.ui.render import SummaryRenderer, create_renderer, summarize_warnings

__all__ = ["SummaryRenderer", "create_renderer", "summarize_warnings"]
