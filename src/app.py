"""Review TUI: show the activation plan and let the operator apply or cancel."""

import logging
import os
from pathlib import Path

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Footer, Label, Static, Tree

from constants import PERSIST_VERSION
from model import ActivationSettings, RootPlan
from ui import populate_plan_tree, settings_summary
from ui.ids import css
import ui.ids as ids

log = logging.getLogger(__name__)


def get_log_path() -> Path:
    """Get the log file path using XDG Base Directory spec."""
    xdg_state = os.environ.get("XDG_STATE_HOME", str(Path.home() / ".local" / "state"))
    log_dir = Path(xdg_state) / "persist"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / "persist.log"


APP_CSS = """
#header-container {
    height: 3;
    padding: 0 1;
    background: $primary-background;
}

#main-content {
    height: 1fr;
}

#plan-tree {
    height: 1fr;
    border: round $primary;
}

#settings-summary {
    padding: 0 1;
    color: $text-muted;
}

#warnings-panel {
    padding: 0 1;
    color: $warning;
}

#footer-buttons {
    height: 3;
    align: center middle;
}
"""


class PlanReviewApp(App):
    """TUI for reviewing an activation plan before applying it."""

    TITLE = "persist"
    ENABLE_COMMAND_PALETTE = False
    CSS = APP_CSS

    BINDINGS = [
        Binding("a", "apply", "Apply", show=True),
        Binding("escape", "cancel", "Cancel", show=True),
        Binding("q", "cancel", "Quit", show=False),
    ]

    def __init__(
        self,
        plans: list[RootPlan],
        settings: ActivationSettings,
        warnings: list[str] | None = None,
        version: str = PERSIST_VERSION,
    ) -> None:
        super().__init__()
        self.plans = plans
        self.settings = settings
        self.warnings = warnings or []
        self.version = version
        # Read by the CLI after the app exits
        self.apply_requested = False

    def compose(self) -> ComposeResult:
        mounts = sum(len(p.mounts) for p in self.plans)
        links = sum(len(p.links) for p in self.plans)
        with Horizontal(id=ids.HEADER_CONTAINER):
            yield Label(
                f"persist {self.version} - {len(self.plans)} root(s), "
                f"{mounts} mount(s), {links} link(s)",
                id=ids.HEADER_TITLE,
            )
        with Vertical(id=ids.MAIN_CONTENT):
            yield Tree("Activation plan", id=ids.PLAN_TREE)
            yield Static(settings_summary(self.settings), id=ids.SETTINGS_SUMMARY)
            yield Static("\n".join(f"warning: {w}" for w in self.warnings), id=ids.WARNINGS_PANEL)
        with Horizontal(id=ids.FOOTER_BUTTONS):
            yield Button("Apply", id=ids.APPLY_BTN, variant="success")
            yield Button("Cancel", id=ids.CANCEL_BTN, variant="default")
        yield Footer()

    def on_mount(self) -> None:
        populate_plan_tree(self.query_one(css(ids.PLAN_TREE), Tree), self.plans)
        if not self.warnings:
            self.query_one(css(ids.WARNINGS_PANEL), Static).display = False

    def action_apply(self) -> None:
        log.info("Plan approved from review TUI")
        self.apply_requested = True
        self.exit()

    def action_cancel(self) -> None:
        self.exit()

    @on(Button.Pressed, css(ids.APPLY_BTN))
    def on_apply_pressed(self, event: Button.Pressed) -> None:
        self.action_apply()

    @on(Button.Pressed, css(ids.CANCEL_BTN))
    def on_cancel_pressed(self, event: Button.Pressed) -> None:
        self.action_cancel()
