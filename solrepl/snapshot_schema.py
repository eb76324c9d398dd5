"""
Snapshot schema models for solrepl.

Pydantic models for the ``<prefix>-<id>.json`` session snapshot files.
Parsed declaration trees are never stored: each record keeps the raw text
twice and the tree is rebuilt by re-parsing on load.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from .toolchain import parse_solc_version


class SnapshotRecord(BaseModel):
    """One session snippet as stored on disk."""

    source_unit: str
    raw: str

    model_config = {
        "extra": "forbid",
    }


class SessionSnapshot(BaseModel):
    """A persisted session: compiler version, ordered snippets and identity."""

    solc_version: str
    session: list[SnapshotRecord] = Field(default_factory=list)
    id: int | None = Field(default=None, ge=0)

    model_config = {
        "extra": "forbid",
    }

    @field_validator("solc_version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        # VersionError is a ValueError, so pydantic reports it as a validation error
        return str(parse_solc_version(value))


__all__ = ["SessionSnapshot", "SnapshotRecord"]
