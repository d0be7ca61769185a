"""Checks of the database schema migration version."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Any, Protocol

__all__ = [
    "MigrationVersionError",
    "VersionRange",
    "VersionExactly",
    "max_version_from",
    "verify_migration_version",
]

_VERSION_RE = re.compile(r"[+-]?[0-9]+", re.ASCII)


class MigrationVersionError(ValueError):
    """Raised when the database is not at an acceptable migration version."""


class _Validator(Protocol):
    def validate(self, version: int) -> int: ...


@dataclass(frozen=True)
class VersionRange:
    """Accepts versions between ``lower`` and ``upper``, both included."""

    lower: int
    upper: int

    def validate(self, version: int) -> int:
        """Return ``version`` if it lies in the range, raise otherwise."""
        if version < self.lower:
            raise MigrationVersionError(
                f"Database at version {version}, lower than requirement of {self.lower}"
            )
        if version > self.upper:
            raise MigrationVersionError(
                f"Database at version {version}, higher than requirement of {self.upper}"
            )
        return version


@dataclass(frozen=True)
class VersionExactly:
    """Accepts exactly one version."""

    target: int

    def validate(self, version: int) -> int:
        """Return ``version`` if it equals the target, raise otherwise."""
        if version != self.target:
            raise MigrationVersionError(
                f"Database at version {version}, not equal to requirement of {self.target}"
            )
        return version


def max_version_from(path: str | os.PathLike[str]) -> VersionExactly:
    """Build a validator targeting the highest numbered ``.sql`` migration in ``path``."""
    target = 0
    with os.scandir(path) as entries:
        files = sorted(entries, key=lambda e: e.name)
    for entry in files:
        name = entry.name
        if entry.is_dir() or "." not in name:
            continue
        if name[name.rindex("."):] != ".sql":
            continue
        parts = name.split("_")
        if len(parts) < 2:
            raise MigrationVersionError(
                f'Filename "{name}" does not match migration file naming '
                "requirements ##_name.[up/down].sql"
            )
        if not _VERSION_RE.fullmatch(parts[0]):
            raise MigrationVersionError(
                f'invalid migration version "{parts[0]}" in {name}'
            )
        target = max(target, int(parts[0]))
    return VersionExactly(target)


def verify_migration_version(connection: Any, validator: _Validator) -> int:
    """Check the ``schema_migrations`` table of a DB-API connection.

    Returns the version found; raises if the database is dirty or the
    validator rejects the version.
    """
    cursor = connection.cursor()
    try:
        cursor.execute("SELECT * FROM schema_migrations")
        row = cursor.fetchone()
    finally:
        cursor.close()
    if row is None:
        raise MigrationVersionError("no rows in schema_migrations")
    version, dirty = int(row[0]), bool(row[1])
    if dirty:
        raise MigrationVersionError(f"Database at version {version}, but is dirty")
    return validator.validate(version)