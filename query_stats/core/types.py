"""Core types used across adapters and flow."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class ColumnMeta:
    """Result column metadata reported by the driver."""

    name: str
    type_code: int
    type_name: str
    nullable: bool
    string_like: bool


@dataclass(slots=True)
class ColumnStat:
    """Length/null/empty profile of one result column.

    `min_len` stays None until the first non-null value is observed.
    """

    name: str
    type_name: str
    nullable: bool
    string_like: bool
    min_len: Optional[int] = None
    max_len: int = 0
    sum_len: int = 0
    count: int = 0
    null_count: int = 0
    empty_count: int = 0

    @classmethod
    def from_meta(cls, meta: ColumnMeta) -> "ColumnStat":
        return cls(
            name=meta.name,
            type_name=meta.type_name,
            nullable=meta.nullable,
            string_like=meta.string_like,
        )

    @property
    def avg_len(self) -> Optional[int]:
        return self.sum_len // self.count if self.count else None


@dataclass(slots=True)
class RowSizeStat:
    """Whole-row size profile; `min_size` is None until the first row."""

    rows: int = 0
    total: int = 0
    min_size: Optional[int] = None
    max_size: int = 0

    @property
    def avg_size(self) -> int:
        return self.total // self.rows if self.rows else 0


@dataclass(frozen=True)
class StatusGroup:
    """Titled, ordered list of session status counters."""

    title: str
    names: tuple[str, ...] = field(default_factory=tuple)
