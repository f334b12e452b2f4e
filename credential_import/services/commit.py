from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Sequence

from ..db.base import StaffStore
from ..logging.error_log import ErrorLogBuffer
from ..models.commit_result import CommitError, CommitResult, CommitTally
from ..models.staging import StagedStaffRecord
from .progress import CommitProgress

"""Commit pipeline: persist a reviewed staging dataset.

Each staff row is its own unit of work. A row whose staff record cannot be
created adds one error and none of its assignments are tried; a failed
assignment adds one error and the rest of the row still commits. No failure
stops the rows after it. Counts reflect what was created, not what was tried.
"""

__all__ = [
    "commit_staging",
]

logger = logging.getLogger(__name__)


def _error_text(e: Exception) -> str:
    return str(e) or e.__class__.__name__


def _commit_row(
    store: StaffStore,
    member: StagedStaffRecord,
    tally: CommitTally,
    merge_existing: bool,
) -> bool:
    row = member.source_row_number if member.source_row_number >= 0 else None
    sub_errors: list[CommitError] = []
    created = merged = creds = comps = 0

    try:
        with store.row_scope():
            staff_id = None
            if merge_existing:
                staff_id = store.find_staff(member.first_name, member.last_name)
            if staff_id is not None:
                store.update_staff(staff_id, member)
                merged = 1
            else:
                staff_id = store.create_staff(member)
                created = 1

            # staff_id 確定後にのみ割当を試行
            for cred in member.credentials:
                try:
                    store.create_credential_assignment(staff_id, cred)
                    creds += 1
                except Exception as e:
                    sub_errors.append(CommitError(member.full_name, _error_text(e), "credential", row))
            for comp in member.competencies:
                try:
                    store.create_competency_assignment(staff_id, comp)
                    comps += 1
                except Exception as e:
                    sub_errors.append(CommitError(member.full_name, _error_text(e), "competency", row))
    except Exception as e:
        logger.warning(f"row {row if row is not None else '?'}: staff {member.full_name!r} not imported: {_error_text(e)}")
        tally.errors.append(CommitError(member.full_name, _error_text(e), "staff", row))
        return False

    tally.staff_created += created
    tally.staff_merged += merged
    tally.credentials_assigned += creds
    tally.competencies_assigned += comps
    for err in sub_errors:
        logger.warning(f"row {row if row is not None else '?'}: {err.kind} for {err.staff!r} skipped: {err.error}")
    tally.errors.extend(sub_errors)
    return not sub_errors


def commit_staging(
    staff: Sequence[StagedStaffRecord],
    excluded_indices: Iterable[int] | None,
    store: StaffStore,
    *,
    merge_existing: bool = False,
    error_log: ErrorLogBuffer | None = None,
) -> CommitResult:
    """Persist every non-excluded staged staff row.

    Args:
        staff: staged records, in review order
        excluded_indices: indexes into staff to skip; None uses each record's excluded flag
        store: StaffStore implementation (PostgreSQL or in-memory)
        merge_existing: reuse an existing staff record with the same name
        error_log: optional JSON Lines buffer that receives every error

    Returns:
        CommitResult (never raises for persistence failures)
    """
    if excluded_indices is None:
        excluded = {i for i, s in enumerate(staff) if s.excluded}
    else:
        excluded = set(excluded_indices)

    start = time.perf_counter()
    tally = CommitTally()
    to_commit = len(staff) - len(excluded & set(range(len(staff))))
    logger.info(f"commit: {to_commit} staff rows ({len(excluded)} excluded)")

    with CommitProgress(to_commit) as progress:
        for index, member in enumerate(staff):
            if index in excluded:
                tally.skipped_excluded += 1
                continue
            progress.start_row(member.full_name)
            ok = _commit_row(store, member, tally, merge_existing)
            progress.finish_row(success=ok)

    result = tally.freeze(elapsed_seconds=time.perf_counter() - start)
    if error_log is not None:
        for err in result.errors:
            error_log.append_commit_error(err)
    return result
