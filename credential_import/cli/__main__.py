from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from credential_import.config.loader import ConfigError, ImportConfig, load_config
from credential_import.db.base import PersistenceError
from credential_import.db.connection import db_cursor
from credential_import.db.memory import InMemoryCatalog, InMemoryStaffStore
from credential_import.db.store import PgCredentialTypeCatalog, PgStaffStore
from credential_import.excel.reader import EmptyWorkbookError, WorkbookReadError
from credential_import.logging.error_log import ErrorLogBuffer
from credential_import.logging.init import log_summary, setup_logging
from credential_import.models.column_analysis import CredentialType
from credential_import.models.mapping import ColumnMapping
from credential_import.services.commit import commit_staging
from credential_import.services.mapping_store import MappingError
from credential_import.services.preview import StagingDataset, StagingEditError
from credential_import.services.session import ImportSession
from credential_import.services.summary import outcome_label, render_summary_line

"""CLI entrypoint.

    credential-import analyze ROSTER.xlsx [--write-mapping mapping.json]
    credential-import preview ROSTER.xlsx --mapping mapping.json [--out staging.json]
    credential-import confirm staging.json [--exclude 0,3]

The staging file written by preview is exactly what confirm reads; edit it
in between to fix names or dates, or set "excluded": true on a row.
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

DEFAULT_CONFIG_PATH = Path("config/import.yml")

logger = logging.getLogger("credential_import.cli")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="credential-import", description="Roster spreadsheet -> staff credential import")
    p.add_argument("--config", type=Path, default=None, help=f"YAML config (default: {DEFAULT_CONFIG_PATH} if present)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--types", type=Path, default=None, help="JSON list of credential types to seed mock mode")
    sub = p.add_subparsers(dest="command", required=True)

    a = sub.add_parser("analyze", help="Classify columns and count role groups")
    a.add_argument("file", type=Path)
    a.add_argument("--write-mapping", type=Path, default=None, help="Write the suggested mapping here")
    a.add_argument("--out", type=Path, default=None, help="Write the analysis JSON here instead of stdout")

    pv = sub.add_parser("preview", help="Build the reviewable staging file")
    pv.add_argument("file", type=Path)
    pv.add_argument("--mapping", type=Path, required=True, help="Mapping JSON/YAML (see analyze --write-mapping)")
    pv.add_argument("--out", type=Path, default=None, help="Write the staging JSON here instead of stdout")

    c = sub.add_parser("confirm", help="Commit a reviewed staging file")
    c.add_argument("staging", type=Path)
    c.add_argument("--exclude", default="", help="Comma separated staff indexes to skip")
    c.add_argument("--verified-by", type=int, default=None, help="User id recorded as verifier")
    return p.parse_args(argv)


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env so its PG* / DATABASE_URL values win over the config file."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _resolve_config(path: Path | None) -> ImportConfig:
    if path is not None:
        return load_config(path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return ImportConfig()


def _read_structured(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yml", ".yaml"):
        return yaml.safe_load(text)
    return json.loads(text)


def _seed_types(path: Path | None) -> list[CredentialType]:
    if path is None:
        return []
    return [
        CredentialType(
            id=int(t["id"]),
            name=t["name"],
            category=t.get("category", "Other"),
            renewal_period_months=t.get("renewal_period_months"),
        )
        for t in _read_structured(path)
    ]


@contextmanager
def _backends(cfg: ImportConfig, args: argparse.Namespace) -> Iterator[tuple[Any, Any, str]]:
    """Yield (catalog, store, mode). mode is "live" (PostgreSQL) or "mock"."""
    def _mock() -> tuple[Any, Any, str]:
        catalog = InMemoryCatalog(_seed_types(args.types), cfg.default_renewal_months)
        return catalog, InMemoryStaffStore(), "mock"

    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
        yield _mock()
        return

    with ExitStack() as stack:
        try:
            cur = stack.enter_context(db_cursor(cfg.database))
        except Exception as e:
            logger.info(f"DB connection failed -> fallback to mock mode: {e}")
            yield _mock()
            return
        catalog = PgCredentialTypeCatalog(cur, cfg.default_renewal_months, cfg.default_alert_days)
        yield catalog, PgStaffStore(cur, getattr(args, "verified_by", None)), "live"


def _emit_json(data: Any, out: Path | None) -> None:
    text = json.dumps(data, ensure_ascii=False, indent=2)
    if out is None:
        print(text)
    else:
        out.write_text(text + "\n", encoding="utf-8")
        logger.info(f"wrote {out}")


def _cmd_analyze(cfg: ImportConfig, args: argparse.Namespace) -> int:
    with _backends(cfg, args) as (catalog, store, mode), ImportSession(catalog, store, cfg) as session:
        analysis = session.analyze(args.file)
        logger.info(f"mode={mode} staff_rows={sum(g.count for g in analysis.role_groups.values())}")
        if args.write_mapping is not None:
            args.write_mapping.write_text(
                json.dumps(session.mapping_store.mapping.to_dict(), indent=2) + "\n", encoding="utf-8"
            )
            logger.info(f"wrote suggested mapping to {args.write_mapping}")
        _emit_json(analysis.to_dict(), args.out)
    return EXIT_SUCCESS_ALL


def _cmd_preview(cfg: ImportConfig, args: argparse.Namespace) -> int:
    mapping = ColumnMapping.from_dict(_read_structured(args.mapping))
    with _backends(cfg, args) as (catalog, store, mode), ImportSession(catalog, store, cfg) as session:
        session.analyze(args.file)
        dataset = session.preview(mapping)
        for w in dataset.warnings:
            logger.warning(f"row {w.row} ({w.name or '?'}): {'; '.join(w.warnings)}")
        counts = dataset.review_counts()
        logger.info(f"mode={mode} review: ready={counts.ready} warned={counts.warned} excluded={counts.excluded}")
        _emit_json(dataset.to_dict(), args.out)
    return EXIT_SUCCESS_ALL


def _parse_exclude(raw: str) -> set[int]:
    return {int(part) for part in raw.split(",") if part.strip()}


def _cmd_confirm(cfg: ImportConfig, args: argparse.Namespace) -> int:
    dataset = StagingDataset.from_dict(_read_structured(args.staging))
    excluded = dataset.excluded_indices() | _parse_exclude(args.exclude)
    for index in excluded:
        if 0 <= index < len(dataset):
            dataset.set_excluded(index)
    stats = dataset.commit_stats()
    logger.info(
        f"confirm: staff={stats.total_staff} credentials={stats.total_credentials} "
        f"competencies={stats.total_competencies} excluded={len(excluded)}"
    )
    error_log = ErrorLogBuffer(source=args.staging.name)
    with _backends(cfg, args) as (catalog, store, mode):
        result = commit_staging(
            dataset.staff, excluded, store, merge_existing=cfg.merge_existing, error_log=error_log
        )
    log_path = error_log.flush()
    if log_path is not None:
        logger.info(f"error log: {log_path}")
    logger.info(f"mode={mode} outcome={outcome_label(result)}")
    summary_line = render_summary_line(result)
    log_summary(summary_line[len("SUMMARY "):])
    return EXIT_PARTIAL_FAILURE if result.has_errors else EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    app_logger = setup_logging()

    # None のときのみシステム引数を読む ([] はテストからの明示指定)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        for h in app_logger.handlers:
            h.setLevel(logging.DEBUG)
        app_logger.setLevel(logging.DEBUG)
        logger.debug("debug mode enabled")

    try:
        cfg = _resolve_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    commands = {"analyze": _cmd_analyze, "preview": _cmd_preview, "confirm": _cmd_confirm}
    try:
        return commands[args.command](cfg, args)
    except (WorkbookReadError, EmptyWorkbookError) as e:
        logger.error(f"workbook: {e}")
    except MappingError as e:
        logger.error(f"mapping: {e}")
    except StagingEditError as e:
        logger.error(f"staging: {e}")
    except PersistenceError as e:
        logger.error(f"database: {e}")
    except (OSError, ValueError, KeyError, yaml.YAMLError) as e:
        logger.error(f"{args.command}: {e}")
    return EXIT_FATAL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
