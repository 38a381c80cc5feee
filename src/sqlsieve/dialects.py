from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlsieve.errors import InvalidIdentifier
from sqlsieve.results import RawResult

logger = logging.getLogger(__name__)

# Generated-id strategies
IDS_LAST_INSERT_ID = "last_insert_id"
IDS_OUTPUT = "output"
IDS_RETURNING = "returning"

# Pagination styles
PAGE_LIMIT_OFFSET = "limit_offset"
PAGE_OFFSET_FETCH = "offset_fetch"


@dataclass(frozen=True)
class Dialect:
	"""
	Syntax and limit variant of one SQL backend.
	"""
	name: str
	open_quote: str
	close_quote: str
	placeholder: str = "?"
	max_params: int = 65536
	option_keys: tuple[str, ...] = ()
	pagination: str = PAGE_LIMIT_OFFSET
	id_strategy: str = IDS_LAST_INSERT_ID
	double_percent: bool = False
	max_insert_rows: int | None = None

	def escape_identifier(self, identifier: Any) -> str:
		"""
		Quote a table or column name. Qualified names ('schema.table') are
		split on '.' and each segment is quoted on its own.
		"""
		if not isinstance(identifier, str):
			raise InvalidIdentifier(f"Identifier must be a string, got {type(identifier).__name__}.")
		if identifier == "":
			raise InvalidIdentifier("Identifier cannot be blank.")
		segments = identifier.split(".")
		if any(s == "" for s in segments):
			raise InvalidIdentifier(f"Identifier contains an empty segment: {identifier!r}")
		return ".".join(self._quote(s) for s in segments)

	def _quote(self, segment: str) -> str:
		text = segment.replace(self.close_quote, self.close_quote * 2)
		if self.double_percent:
			# psycopg2 treats '%' in the query text as a format marker
			text = text.replace("%", "%%")
		return f"{self.open_quote}{text}{self.close_quote}"

	def placeholders(self, count: int) -> str:
		return ",".join(self.placeholder for _ in range(count))

	def extract_ids(self, raw: RawResult, row_count: int, id_column: str | None) -> list[Any]:
		"""
		Pull generated identifiers for `row_count` inserted rows out of a raw result.
		Returns an empty list when the backend reported none.
		"""
		if self.id_strategy == IDS_LAST_INSERT_ID:
			if raw.last_insert_id is None:
				return []
			first = int(raw.last_insert_id)
			return list(range(first, first + row_count))

		if id_column is None:
			return []
		ids = [row[id_column] for row in raw.rows]
		if ids and len(ids) != row_count:
			logger.warning(
				"Expected %s generated ids from %s insert, received %s",
				row_count,
				self.name,
				len(ids),
			)
		return ids


MYSQL = Dialect(
	name="mysql",
	open_quote="`",
	close_quote="`",
	max_params=65536,
)

SQLSERVER = Dialect(
	name="sqlserver",
	open_quote="[",
	close_quote="]",
	max_params=2100,
	option_keys=("id_column",),
	pagination=PAGE_OFFSET_FETCH,
	id_strategy=IDS_OUTPUT,
	# row constructors per INSERT ... VALUES (Msg 10738)
	max_insert_rows=1000,
)

POSTGRESQL = Dialect(
	name="postgresql",
	open_quote='"',
	close_quote='"',
	placeholder="%s",
	max_params=65535,
	option_keys=("id_column",),
	id_strategy=IDS_RETURNING,
	double_percent=True,
)

_REGISTRY: dict[str, Dialect] = {}


def register(dialect: Dialect) -> None:
	name = getattr(dialect, "name", None)
	if not name or not isinstance(name, str):
		raise ValueError("Dialect must define a non-empty .name")
	_REGISTRY[name.lower()] = dialect


def get_dialect(name: str | Dialect) -> Dialect:
	if isinstance(name, Dialect):
		return name
	k = (name or "").lower()
	if k not in _REGISTRY:
		available = ", ".join(sorted(_REGISTRY.keys()))
		raise KeyError(f"Unknown dialect '{name}'. Available: {available}")
	return _REGISTRY[k]


def available() -> dict[str, Dialect]:
	return dict(_REGISTRY)


for _d in (MYSQL, SQLSERVER, POSTGRESQL):
	register(_d)
