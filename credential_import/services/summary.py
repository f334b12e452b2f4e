from __future__ import annotations

from ..models.commit_result import CommitResult

"""SUMMARY line rendering for a finished commit."""


def _format_seconds(seconds: float) -> str:
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        # 指数表記を避ける
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.2f}"


def render_summary_line(result: CommitResult) -> str:
    """Render the SUMMARY line for a CommitResult.

    Examples:
        >>> r = CommitResult(staff_created=3, credentials_assigned=5, competencies_assigned=2)
        >>> render_summary_line(r)
        'SUMMARY staff=3 merged=0 credentials=5 competencies=2 errors=0 excluded=0 elapsed_sec=0'
    """
    return (
        f"SUMMARY staff={result.staff_created} "
        f"merged={result.staff_merged} "
        f"credentials={result.credentials_assigned} "
        f"competencies={result.competencies_assigned} "
        f"errors={len(result.errors)} "
        f"excluded={result.skipped_excluded} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )


def outcome_label(result: CommitResult) -> str:
    """success / partial / failed, as shown to the reviewer after commit."""
    created = result.staff_created + result.staff_merged
    if not result.errors:
        return "success"
    if created > 0:
        return "partial"
    return "failed"
