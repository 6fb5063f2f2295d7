#!/usr/bin/env python3
"""Console output: per-repository progress lines and the end-of-run summary."""
from __future__ import annotations

import sys
from typing import Iterable, List, Optional, TextIO

from colorama import Fore, Style

from repo_state import SyncOutcome, Tone

ICONS = {
    Tone.OK: "✅",
    Tone.FAIL: "❌",
    Tone.WARN: "⚠️ ",
    Tone.NEUTRAL: "ℹ️ ",
}

COLORS = {
    Tone.OK: Fore.GREEN,
    Tone.FAIL: Fore.RED,
    Tone.WARN: Fore.YELLOW,
    Tone.NEUTRAL: Fore.CYAN,
}


class ReportRenderer:
    """Format and print sync progress and summaries."""

    def __init__(self, stream: Optional[TextIO] = None, color: bool = True) -> None:
        self.stream = stream or sys.stdout
        self.color = color

    def _paint(self, text: str, tone: Tone) -> str:
        if not self.color:
            return text
        return f"{COLORS[tone]}{text}{Style.RESET_ALL}"

    def _print(self, text: str = "") -> None:
        print(text, file=self.stream, flush=True)

    def progress_line(self, index: int, total: int, outcome: SyncOutcome) -> str:
        width = len(str(total))
        icon = ICONS[outcome.tone]
        return f"[{index:>{width}}/{total}] {outcome.name} ({outcome.branch}) {icon} {self._paint(outcome.label, outcome.tone)}"

    def progress(self, index: int, total: int, outcome: SyncOutcome) -> None:
        self._print(self.progress_line(index, total, outcome))

    def summary_table(self, outcomes: Iterable[SyncOutcome]) -> List[str]:
        rows = sorted(outcomes, key=lambda o: o.name)
        if not rows:
            return []
        show_status = not all(row.up_to_date for row in rows)
        name_w = max(10, *(len(row.name) for row in rows))
        branch_w = max(6, *(len(row.branch) for row in rows))

        header = f"{'Repository':<{name_w}} {'Branch':<{branch_w}} {'Dirty':<5} {'Pulled':<8} {'+/-':<9}"
        rule = f"{'-' * name_w} {'-' * branch_w} {'-' * 5} {'-' * 8} {'-' * 9}"
        if show_status:
            header += " Status"
            rule += f" {'-' * 24}"
        lines = ["📋 Repository summary:", header, rule]

        notes: List[str] = []
        for row in rows:
            dirty = "Yes" if row.dirty else "No"
            counts = f"+{row.ahead}/-{row.behind}"
            line = f"{row.name:<{name_w}} {row.branch:<{branch_w}} {dirty:<5} {row.pulled.value:<8} {counts:<9}"
            if show_status:
                line += " " + self._paint(row.label, row.tone)
            lines.append(line.rstrip())
            notes.extend(f"  {row.name}: {message}" for message in row.messages)

        if notes:
            lines.append("")
            lines.append("📝 Notes:")
            lines.extend(notes)
        return lines

    def summary(self, outcomes: Iterable[SyncOutcome]) -> None:
        self._print()
        for line in self.summary_table(outcomes):
            self._print(line)

    def footer(self, count: int, elapsed: float, failures: int = 0) -> str:
        noun = "repository" if count == 1 else "repositories"
        text = f"Processed {count} {noun} in {elapsed:.1f}s"
        if failures:
            return f"{text} ({self._paint(f'{failures} failed', Tone.FAIL)})"
        return text

    def finish(self, count: int, elapsed: float, failures: int = 0) -> None:
        self._print()
        self._print(self.footer(count, elapsed, failures))
