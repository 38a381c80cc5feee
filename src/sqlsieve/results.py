from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional


@dataclass(frozen=True)
class RawResult:
	"""
	What an executor hands back for one statement.
	"""
	rows: tuple[dict[str, Any], ...] = ()
	affected: int = 0
	last_insert_id: Any = None

	def __post_init__(self):
		object.__setattr__(self, "rows", tuple(self.rows))


@dataclass(frozen=True)
class SqlResult:
	"""
	Rows and affected-row count of a completed query.

	Rows are read-only copies of what the executor returned.
	"""
	rows: tuple[Mapping[str, Any], ...] = ()
	affected: int = 0
	sql: str = ""

	def __post_init__(self):
		object.__setattr__(self, "rows", tuple(MappingProxyType(dict(r)) for r in self.rows))

	def first(self) -> Optional[Mapping[str, Any]]:
		return self.rows[0] if self.rows else None

	def __iter__(self) -> Iterator[Mapping[str, Any]]:
		return iter(self.rows)

	def __len__(self) -> int:
		return len(self.rows)


@dataclass(frozen=True)
class InsertResult:
	id: Any = None
	affected: int = 0


@dataclass(frozen=True)
class BulkInsertResult:
	"""
	Outcome of one logical bulk insert.

	`ids` are aligned with the input rows; `statement_count` is how many
	physical INSERT statements were needed to stay under the parameter limit.
	"""
	ids: tuple[Any, ...] = field(default_factory=tuple)
	affected: int = 0
	statement_count: int = 1

	def __post_init__(self):
		object.__setattr__(self, "ids", tuple(self.ids))
