from __future__ import annotations

import io
from pathlib import Path

from colorama import Fore

from repo_state import Pulled, StashResult, SyncOutcome, SyncStatus, Tone
from report import ICONS, ReportRenderer


def _outcome(name: str, status: SyncStatus, **kwargs) -> SyncOutcome:
    return SyncOutcome(name=name, path=Path("/r") / name, branch="main", dirty_before=False, status=status, **kwargs)


def test_progress_line_shows_index_branch_icon_and_label() -> None:
    renderer = ReportRenderer(stream=io.StringIO(), color=False)
    line = renderer.progress_line(3, 12, _outcome("Hx", SyncStatus.ALREADY_UP_TO_DATE))
    assert line == f"[ 3/12] Hx (main) {ICONS[Tone.OK]} Already up to date"


def test_icon_and_color_follow_the_status_tag() -> None:
    renderer = ReportRenderer(stream=io.StringIO(), color=True)
    failed = renderer.progress_line(1, 1, _outcome("Ha", SyncStatus.PULL_FAILED))
    skipped = renderer.progress_line(1, 1, _outcome("Hb", SyncStatus.DIRTY_SKIPPED))
    neutral = renderer.progress_line(1, 1, _outcome("Hc", SyncStatus.FETCH_ONLY))
    assert ICONS[Tone.FAIL] in failed and Fore.RED in failed
    assert ICONS[Tone.WARN] in skipped and Fore.YELLOW in skipped
    assert ICONS[Tone.NEUTRAL] in neutral and Fore.CYAN in neutral


def test_stash_conflict_downgrades_a_successful_pull_to_warning() -> None:
    outcome = _outcome("Hz", SyncStatus.FAST_FORWARDED, stash=StashResult.CONFLICTS)
    assert outcome.tone is Tone.WARN
    assert outcome.label == "Fast-forwarded (Stash conflicts)"


def test_summary_is_sorted_by_name_and_omits_status_when_all_up_to_date() -> None:
    renderer = ReportRenderer(stream=io.StringIO(), color=False)
    lines = renderer.summary_table(
        [
            _outcome("Hz", SyncStatus.ALREADY_UP_TO_DATE),
            _outcome("Ha", SyncStatus.ALREADY_UP_TO_DATE),
        ]
    )
    assert "Status" not in lines[1]
    body = lines[3:]
    assert [row.split()[0] for row in body] == ["Ha", "Hz"]


def test_summary_includes_status_and_notes_when_something_went_wrong() -> None:
    renderer = ReportRenderer(stream=io.StringIO(), color=False)
    lines = renderer.summary_table(
        [
            _outcome("Hb", SyncStatus.NO_REMOTE_BRANCH, status_detail="origin/main"),
            _outcome("Ha", SyncStatus.PULL_FAILED, messages=["fatal: Not possible to fast-forward, aborting."]),
        ]
    )
    assert lines[1].rstrip().endswith("Status")
    assert lines[3].startswith("Ha") and lines[3].endswith("Pull failed")
    assert lines[4].endswith("No remote branch origin/main")
    assert "  Ha: fatal: Not possible to fast-forward, aborting." in lines


def test_summary_of_nothing_is_empty() -> None:
    assert ReportRenderer(stream=io.StringIO(), color=False).summary_table([]) == []


def test_footer_counts_repositories_and_failures() -> None:
    renderer = ReportRenderer(stream=io.StringIO(), color=False)
    assert renderer.footer(0, 0.04) == "Processed 0 repositories in 0.0s"
    assert renderer.footer(1, 1.26) == "Processed 1 repository in 1.3s"
    assert renderer.footer(5, 2.0, failures=2) == "Processed 5 repositories in 2.0s (2 failed)"


def test_progress_writes_to_the_stream() -> None:
    stream = io.StringIO()
    ReportRenderer(stream=stream, color=False).progress(1, 1, _outcome("Hx", SyncStatus.NO_ORIGIN, pulled=Pulled.NO_ORIGIN))
    assert stream.getvalue().strip().endswith("No origin remote")


def test_updated_or_restored_rows_keep_the_status_column() -> None:
    renderer = ReportRenderer(stream=io.StringIO(), color=False)
    pulled = renderer.summary_table(
        [
            _outcome("Ha", SyncStatus.ALREADY_UP_TO_DATE),
            _outcome("Hb", SyncStatus.FAST_FORWARDED, pulled=Pulled.YES),
        ]
    )
    assert pulled[1].rstrip().endswith("Status")
    assert pulled[4].endswith("Fast-forwarded")

    restored = renderer.summary_table(
        [_outcome("Hc", SyncStatus.ALREADY_UP_TO_DATE, stash=StashResult.RESTORED)]
    )
    assert restored[1].rstrip().endswith("Status")
    assert restored[3].endswith("Already up to date (Stash restored)")
