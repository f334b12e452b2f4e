from __future__ import annotations

import logging
from pathlib import Path

from ..config.loader import ImportConfig
from ..db.base import CredentialTypeCatalog, StaffStore
from ..excel.classifier import suggest_mapping
from ..excel.reader import SheetData, read_workbook
from ..excel.segmenter import RoleMatcher
from ..logging.error_log import ErrorLogBuffer
from ..models.column_analysis import SheetAnalysis
from ..models.commit_result import CommitResult
from ..models.mapping import ColumnMapping
from .analyze import analyze_sheet
from .commit import commit_staging
from .mapping_store import MappingStore
from .preview import StagingDataset, build_preview

"""Import session: analyze -> preview -> confirm for one uploaded roster.

The session owns the mapping store and the staging dataset; both are dropped
by close(), whether the import was committed or cancelled. Phases run one
after another, never concurrently.
"""

__all__ = [
    "SessionStateError",
    "ImportSession",
]

logger = logging.getLogger(__name__)


class SessionStateError(Exception):
    """Raised when a phase is called out of order or after close()."""


class ImportSession:
    def __init__(
        self,
        catalog: CredentialTypeCatalog,
        store: StaffStore,
        config: ImportConfig | None = None,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.config = config or ImportConfig()
        self.matcher = RoleMatcher(self.config.role_groups)
        self._sheet: SheetData | None = None
        self._analysis: SheetAnalysis | None = None
        self._mapping_store: MappingStore | None = None
        self._staging: StagingDataset | None = None
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise SessionStateError("import session is closed")

    @property
    def analysis(self) -> SheetAnalysis | None:
        return self._analysis

    @property
    def mapping_store(self) -> MappingStore:
        self._check_open()
        if self._mapping_store is None:
            raise SessionStateError("analyze must run before the mapping can be edited")
        return self._mapping_store

    @property
    def staging(self) -> StagingDataset:
        self._check_open()
        if self._staging is None:
            raise SessionStateError("preview must run before the staging data can be edited")
        return self._staging

    def analyze(self, source: Path | bytes, file_name: str | None = None) -> SheetAnalysis:
        """Read the workbook and classify its columns.

        Structural failures (unreadable or empty workbook) propagate; the
        session keeps no partial state from a failed analyze.
        """
        self._check_open()
        sheet = read_workbook(
            source,
            sheet=self.config.sheet,
            null_sentinels=self.config.null_sentinels,
            file_name=file_name,
        )
        types = self.catalog.list_all()
        analysis = analyze_sheet(
            sheet,
            types,
            matcher=self.matcher,
            unassigned_role=self.config.unassigned_role,
        )
        self._sheet = sheet
        self._analysis = analysis
        self._mapping_store = MappingStore(
            self.catalog,
            mapping=suggest_mapping(analysis.columns, types),
            column_count=len(sheet.headers),
            credential_types=types,
        )
        self._staging = None
        return analysis

    def preview(self, mapping: ColumnMapping | None = None) -> StagingDataset:
        """Build the staging dataset from the current (or given) mapping.

        A new preview replaces the previous staging dataset and any edits
        made to it.
        """
        self._check_open()
        if self._sheet is None:
            raise SessionStateError("analyze must run before preview")
        store = self.mapping_store
        if mapping is not None:
            store.replace(mapping)
        self._staging = build_preview(
            self._sheet.rows,
            store.mapping,
            headers=self._sheet.headers,
            catalog=store.credential_types,
            matcher=self.matcher,
            unassigned_role=self.config.unassigned_role,
            first_row_number=self._sheet.first_row_number,
        )
        return self._staging

    def confirm(
        self,
        staging: StagingDataset | None = None,
        excluded_indices: set[int] | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> CommitResult:
        """Commit the (possibly edited) staging dataset.

        staging defaults to the dataset built by preview(); excluded_indices
        defaults to the rows flagged as excluded in it.
        """
        self._check_open()
        dataset = staging if staging is not None else self.staging
        if excluded_indices is None:
            excluded_indices = dataset.excluded_indices()
        return commit_staging(
            dataset.staff,
            excluded_indices,
            self.store,
            merge_existing=self.config.merge_existing,
            error_log=error_log,
        )

    def close(self) -> None:
        self._sheet = None
        self._analysis = None
        self._mapping_store = None
        self._staging = None
        self._closed = True

    def __enter__(self) -> ImportSession:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
