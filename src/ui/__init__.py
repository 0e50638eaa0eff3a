"""UI components for the persist review TUI."""

from ui.plan_tree import populate_plan_tree, settings_summary

__all__ = ["populate_plan_tree", "settings_summary"]
