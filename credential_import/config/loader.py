from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader.

Responsibilities:
- Load the YAML config (config/import.yml by default)
- Validate it against config_schema.json (shipped next to this module)
- Apply defaults for every omitted key, so an empty file is a valid config
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")

DEFAULT_NULL_SENTINELS = ("N/A", "NA", "NONE", "-")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class RoleGroupConfig:
    """A role group header and the first-cell synonyms that declare it.

    staff_role is the role written on staff records of this group; None keeps
    the group name.
    """
    name: str
    synonyms: tuple[str, ...]
    employment_type: str | None = None
    staff_role: str | None = None


DEFAULT_ROLE_GROUPS: tuple[RoleGroupConfig, ...] = (
    RoleGroupConfig("RCIS", ("rcis", "tech", "technologist", "cardiovascular tech"), "Permanent", "Tech"),
    RoleGroupConfig("RN", ("rn", "registered nurse", "nurse"), "Permanent", "RN"),
    RoleGroupConfig(
        "Miscellaneous",
        ("miscellaneous", "misc", "agency", "other", "miscellaneous/agency"),
        "Traveler",
        "Traveler",
    ),
)


@dataclass(frozen=True)
class DatabaseConfig:
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    sheet: int | str = 0
    role_groups: tuple[RoleGroupConfig, ...] = DEFAULT_ROLE_GROUPS
    unassigned_role: str = "Unassigned"
    null_sentinels: frozenset[str] = field(
        default_factory=lambda: frozenset(DEFAULT_NULL_SENTINELS)
    )  # 大文字化済み
    default_renewal_months: int = 24
    default_alert_days: int = 90
    merge_existing: bool = False
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or not valid JSON, or the data
            violates the schema (unknown keys, wrong types, ...).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def config_from_dict(data: dict[str, Any]) -> ImportConfig:
    _validate_config_schema(data)

    if "role_groups" in data:
        role_groups = tuple(
            RoleGroupConfig(
                name=g["name"],
                synonyms=tuple(s.strip().lower() for s in g["synonyms"]),
                employment_type=g.get("employment_type"),
                staff_role=g.get("staff_role"),
            )
            for g in data["role_groups"]
        )
    else:
        role_groups = DEFAULT_ROLE_GROUPS

    sentinels = data.get("null_sentinels", DEFAULT_NULL_SENTINELS)
    ct_raw = data.get("credential_types", {})
    db_raw = data.get("database", {})
    return ImportConfig(
        sheet=data.get("sheet", 0),
        role_groups=role_groups,
        unassigned_role=data.get("unassigned_role", "Unassigned"),
        null_sentinels=frozenset(s.strip().upper() for s in sentinels),
        default_renewal_months=ct_raw.get("default_renewal_months", 24),
        default_alert_days=ct_raw.get("default_alert_days", 90),
        merge_existing=data.get("commit", {}).get("merge_existing", False),
        database=DatabaseConfig(
            host=db_raw.get("host"),
            port=db_raw.get("port"),
            user=db_raw.get("user"),
            password=db_raw.get("password"),
            database=db_raw.get("database"),
            dsn=db_raw.get("dsn"),
        ),
    )


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top-level value must be a mapping")
    return config_from_dict(data)
