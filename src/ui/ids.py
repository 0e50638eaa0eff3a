"""Widget ID constants for the review TUI.

Using constants prevents typos and makes refactoring easier.
"""


def css(widget_id: str) -> str:
    """Return a CSS selector for a widget ID.

    Usage:
        from ui.ids import css, PLAN_TREE
        self.query_one(css(PLAN_TREE), Tree)
    """
    return f"#{widget_id}"

# Container IDs
HEADER_CONTAINER = "header-container"
HEADER_TITLE = "header-title"
MAIN_CONTENT = "main-content"
FOOTER_BUTTONS = "footer-buttons"

# Plan view IDs
PLAN_TREE = "plan-tree"
SETTINGS_SUMMARY = "settings-summary"
WARNINGS_PANEL = "warnings-panel"

# Button IDs
APPLY_BTN = "apply-btn"
CANCEL_BTN = "cancel-btn"
