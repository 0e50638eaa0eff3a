"""Tests for review TUI event handling - verifies buttons and bindings reach their handlers.

These tests catch wiring problems where event decorators don't register properly.
"""

import pytest

from textual.widgets import Static, Tree

from app import PlanReviewApp
from model import ActivationSettings, LinkMode, PersistenceConfig
from planner import MountPlanner
import ui.ids as ids
from ui.ids import css


def make_app(warnings=None, link_mode=LinkMode.DIRECT):
    config = PersistenceConfig.from_mapping({
        "/state": {
            "directories": ["/var/lib/iwd", "/var/log"],
            "files": ["/etc/machine-id"],
        },
        "/persist": {},
    })
    plans = MountPlanner(link_mode).plan(config)
    return PlanReviewApp(plans, ActivationSettings(link_mode=link_mode), warnings)


class TestPlanDisplay:
    """Test what the review screen shows."""

    @pytest.mark.asyncio
    async def test_tree_has_one_branch_per_unit(self):
        app = make_app()
        async with app.run_test() as pilot:
            await pilot.pause()
            tree = app.query_one(css(ids.PLAN_TREE), Tree)

            branches = tree.root.children
            assert len(branches) == 2
            persist, state = branches
            assert str(persist.label).startswith("createDirsIn--persist")
            assert "(nothing to do)" in str(persist.children[0].label)
            assert len(state.children) == 3

    @pytest.mark.asyncio
    async def test_leaves_carry_descriptors(self):
        app = make_app()
        async with app.run_test() as pilot:
            await pilot.pause()
            state = app.query_one(css(ids.PLAN_TREE), Tree).root.children[1]

            targets = [leaf.data.target for leaf in state.children]
            assert targets == ["/var/lib/iwd", "/var/log", "/etc/machine-id"]

    @pytest.mark.asyncio
    async def test_overlay_leaves_labelled(self):
        app = make_app(link_mode=LinkMode.OVERLAY)
        async with app.run_test() as pilot:
            await pilot.pause()
            state = app.query_one(css(ids.PLAN_TREE), Tree).root.children[1]
            assert "overlay" in str(state.children[-1].label)

    @pytest.mark.asyncio
    async def test_warnings_hidden_when_empty(self):
        app = make_app()
        async with app.run_test() as pilot:
            await pilot.pause()
            assert app.query_one(css(ids.WARNINGS_PANEL), Static).display is False

    @pytest.mark.asyncio
    async def test_warnings_shown(self):
        app = make_app(warnings=["/var/log is persisted by several roots: /a, /b"])
        async with app.run_test() as pilot:
            await pilot.pause()
            assert app.query_one(css(ids.WARNINGS_PANEL), Static).display is True


class TestDecisionEvents:
    """Test apply and cancel wiring."""

    @pytest.mark.asyncio
    async def test_apply_button_requests_apply(self):
        app = make_app()
        async with app.run_test() as pilot:
            await pilot.click(css(ids.APPLY_BTN))
            await pilot.pause()
        assert app.apply_requested is True

    @pytest.mark.asyncio
    async def test_cancel_button_does_not_apply(self):
        app = make_app()
        async with app.run_test() as pilot:
            await pilot.click(css(ids.CANCEL_BTN))
            await pilot.pause()
        assert app.apply_requested is False

    @pytest.mark.asyncio
    async def test_apply_binding(self):
        app = make_app()
        async with app.run_test() as pilot:
            await pilot.press("a")
            await pilot.pause()
        assert app.apply_requested is True

    @pytest.mark.asyncio
    async def test_escape_cancels(self):
        app = make_app()
        async with app.run_test() as pilot:
            await pilot.press("escape")
            await pilot.pause()
        assert app.apply_requested is False
