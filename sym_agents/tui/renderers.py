from rich.console import Console
from rich.markup import escape

from sym_agents.models import ActionStatus, ReconcileReport
from sym_agents.tui.enums import UIStyle
from sym_agents.tui.tables import ReportTable, ResultTable, section
from sym_agents.utils import compact_home_paths_in_text


class SymAgentsConsoleUI:
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render_plan(self, report: ReconcileReport, mode: str = "plan") -> None:
        self.console.print(
            section(
                "plan overview",
                ReportTable.summary_block(report, mode=mode),
                style=UIStyle.BLUE.value,
            )
        )

        pending = [
            action for action in report.actions if action.status != ActionStatus.NOOP
        ]
        if pending:
            self.console.print(
                section(
                    "links",
                    ReportTable.actions_table(pending),
                    style=UIStyle.CYAN.value,
                )
            )
        else:
            self.console.print(
                section("links", "No actions required.", style=UIStyle.DIM.value)
            )
        self._render_notes(report)

    def render_summary(self, report: ReconcileReport, mode: str) -> None:
        self.console.print(ResultTable.stats_panel(report, mode=mode))
        self._render_notes(report)

    def _render_notes(self, report: ReconcileReport) -> None:
        if report.errors:
            errors_text = "\n".join(
                f"- {escape(compact_home_paths_in_text(str(item)))}"
                for item in report.errors
            )
            self.console.print(section("errors", errors_text, style=UIStyle.RED.value))

        if report.skipped:
            skipped_text = "\n".join(
                f"- {escape(compact_home_paths_in_text(item))}" for item in report.skipped
            )
            self.console.print(
                section("skipped", skipped_text, style=UIStyle.YELLOW.value)
            )
