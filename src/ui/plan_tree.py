"""Plan rendering helpers for the review TUI."""

from __future__ import annotations

from textual.widgets import Tree

from model import ActivationSettings, LinkMode, RootPlan


def populate_plan_tree(tree: Tree, plans: list[RootPlan]) -> None:
    """Fill tree with one branch per unit, mounts and links as leaves."""
    tree.clear()
    tree.root.expand()
    for plan in plans:
        branch = tree.root.add(f"{plan.unit_name}  [dim]{plan.root}[/dim]", expand=True)
        if plan.is_empty():
            branch.add_leaf("[dim](nothing to do)[/dim]")
            continue
        for mount in plan.mounts:
            branch.add_leaf(f"[green]mount[/green] {mount.source} -> {mount.target}", data=mount)
        for link in plan.links:
            verb = "overlay" if link.mode is LinkMode.OVERLAY else "link"
            branch.add_leaf(f"[cyan]{verb}[/cyan] {link.target} -> {link.source}", data=link)


def settings_summary(settings: ActivationSettings) -> str:
    """One-line description of the policy the plan will be applied with."""
    parts = [
        f"missing sources: {settings.missing_source.value}",
        f"files: {settings.link_mode.value}",
        f"allowed prefix: {settings.allowed_prefix}",
    ]
    if settings.target_root != "/":
        parts.append(f"target root: {settings.target_root}")
    if settings.dry_run:
        parts.append("dry run")
    return " | ".join(parts)
