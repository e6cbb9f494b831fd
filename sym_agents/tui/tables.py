from collections import Counter

from rich.panel import Panel
from rich.table import Column, Table
from rich.text import Text

from sym_agents.models import ActionStatus, LinkAction, ReconcileReport
from sym_agents.tui.enums import ACTION_STATUS_STYLE, UIStyle
from sym_agents.utils import compact_home_path


def section(title: str, body, style: str = UIStyle.BLUE.value) -> Panel:
    return Panel(body, title=title, border_style=style, padding=(0, 1))


def status_markup(status: ActionStatus) -> str:
    style = ACTION_STATUS_STYLE.get(status, UIStyle.WHITE.value)
    return f"[{style}]{status.value}[/{style}]"


class ReportTable:
    @staticmethod
    def summary_block(report: ReconcileReport, mode: str) -> Table:
        counts = Counter(action.status.value for action in report.actions)
        chips = [f"{key}={value}" for key, value in sorted(counts.items()) if value > 0]
        if not chips:
            chips = ["none"]

        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Mode", Text(mode))
        table.add_row("Directories", str(len(report.actions)))
        table.add_row("Statuses", "  ".join(chips))
        return table

    @staticmethod
    def actions_table(actions: list[LinkAction]) -> Table:
        table = Table(
            Column(header="Status", width=10),
            Column(header="Directory", overflow="ellipsis", max_width=58),
            Column(header="Target", overflow="ellipsis", max_width=42),
            Column(header="Reason", overflow="ellipsis"),
            expand=True,
            header_style="bold",
        )
        for action in actions:
            if action.rule is not None:
                target = compact_home_path(action.rule.target_document)
            elif action.conflicting:
                target = ", ".join(
                    compact_home_path(rule.root_directory) for rule in action.conflicting
                )
            else:
                target = ""
            table.add_row(
                status_markup(action.status),
                Text(compact_home_path(action.directory)),
                Text(target),
                Text(action.detail),
                end_section=False,
            )
        return table


class ResultTable:
    @staticmethod
    def stats_panel(report: ReconcileReport, mode: str) -> Panel:
        summary = report.summary()
        table = Table(show_header=False, box=None)
        table.add_row("[bold]mode[/bold]", Text(mode))
        for status in ActionStatus:
            if summary[status.value]:
                table.add_row(f"[bold]{status.value}[/bold]", str(summary[status.value]))
        table.add_row("[bold]errors[/bold]", str(summary["errors"]))
        failed = summary[ActionStatus.FAILED.value] or summary["errors"]
        return Panel(
            table,
            title="result",
            border_style=UIStyle.GREEN.value if not failed else UIStyle.RED.value,
        )
