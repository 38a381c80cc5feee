from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from sqlsieve.dialects import PAGE_OFFSET_FETCH
from sqlsieve.errors import InvalidPagination, InvalidSortDirection
from sqlsieve.operators import SqlFragment, compile_filter
from sqlsieve.options import Options

SortSpec = Union[Mapping[str, str], Sequence[Union[str, tuple[str, str]]]]

_DIRECTIONS = {"asc": "ASC", "desc": "DESC"}


def build_where(options: Options, filters: Optional[Mapping[str, Any]]) -> SqlFragment:
	"""
	Build a WHERE clause from a column -> filter mapping.

	Every column is checked against the whitelist before anything is compiled.
	Returns an empty fragment for an empty mapping.
	"""
	if not filters:
		return SqlFragment("", ())

	options.validate_columns(filters.keys(), "condition")

	conditions: list[str] = []
	params: list[Any] = []
	for column, value in filters.items():
		fragment = compile_filter(options.dialect, column, value)
		conditions.append(fragment.sql)
		params.extend(fragment.params)

	return SqlFragment("WHERE " + " AND ".join(conditions), params)


def _normalize_sort(sort: SortSpec) -> list[tuple[Any, Any]]:
	if isinstance(sort, Mapping):
		return list(sort.items())
	if isinstance(sort, str):
		return [(sort, "asc")]

	pairs: list[tuple[Any, Any]] = []
	for item in sort:
		if isinstance(item, (tuple, list)):
			if len(item) != 2:
				raise InvalidSortDirection("order_by entries must be a column or a (column, direction) pair.")
			pairs.append((item[0], item[1]))
		else:
			pairs.append((item, "asc"))
	return pairs


def build_order_by(options: Options, sort: Optional[SortSpec], raw: bool = False) -> str:
	"""
	Build an ORDER BY clause.

	With raw=True the column expressions are trusted and emitted verbatim;
	directions are still validated.
	"""
	if not sort:
		return ""

	pairs = _normalize_sort(sort)
	if not raw:
		options.validate_columns([c for c, _ in pairs], "order_by")

	parts: list[str] = []
	for column, direction in pairs:
		dir_up = _DIRECTIONS.get(str(direction).lower())
		if dir_up is None:
			raise InvalidSortDirection(f"Sort direction must be 'asc' or 'desc', got {direction!r}")
		col_sql = str(column) if raw else options.dialect.escape_identifier(column)
		parts.append(f"{col_sql} {dir_up}")

	return "ORDER BY " + ", ".join(parts)


def build_pagination(options: Options, page: Any, page_size: Any) -> str:
	"""
	Build LIMIT/OFFSET (or OFFSET/FETCH) text for a 1-based page number.
	"""
	if not _is_int(page) or not _is_int(page_size):
		raise InvalidPagination("Page and page size must be integers.")
	if page < 1 or page_size < 1:
		raise InvalidPagination("Page and page size must be positive.")
	if page_size > options.max_page_size:
		raise InvalidPagination(f"Page size cannot be greater than {options.max_page_size}.")

	offset = (page - 1) * page_size
	if options.dialect.pagination == PAGE_OFFSET_FETCH:
		return f"OFFSET {offset} ROWS FETCH NEXT {page_size} ROWS ONLY"
	return f"LIMIT {page_size} OFFSET {offset}"


def join_sql(parts: Iterable[str]) -> str:
	return " ".join(p for p in parts if p)


def _is_int(value: Any) -> bool:
	return isinstance(value, int) and not isinstance(value, bool)
