"""Result container shared by archive page crawlers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

RowT = TypeVar("RowT")


@dataclass(slots=True)
class CrawlResult(Generic[RowT]):
    """Rows read from one archive page plus per-row parse problems."""

    source_url: str
    rows: list[RowT]
    errors: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.rows
