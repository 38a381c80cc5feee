from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from sqlsieve.clauses import SortSpec, build_order_by, build_pagination, build_where, join_sql
from sqlsieve.dialects import IDS_OUTPUT, IDS_RETURNING, PAGE_OFFSET_FETCH
from sqlsieve.errors import (
	EmptyUpdateClause,
	InsertRowMismatch,
	InvalidIdentifier,
	InvalidPagination,
	MissingInsertData,
	RowTooWide,
)
from sqlsieve.operators import SqlFragment
from sqlsieve.options import Options

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BulkInsertBatch:
	"""
	One physical INSERT covering rows[start:start + row_count] of the request.
	"""
	fragment: SqlFragment
	start: int
	row_count: int

	@property
	def stop(self) -> int:
		return self.start + self.row_count


@dataclass(frozen=True)
class BulkInsertPlan:
	columns: tuple[str, ...]
	batches: tuple[BulkInsertBatch, ...]
	rows_per_statement: int

	@property
	def row_count(self) -> int:
		return sum(b.row_count for b in self.batches)

	@property
	def statement_count(self) -> int:
		return len(self.batches)


class QueryBuilder:
	"""
	Builds whitelisted, escaped statements for the table named in `options`.

	Every method validates all of its input before producing SQL, and returns
	an SqlFragment (or a BulkInsertPlan of fragments).
	"""

	def __init__(self, options: Options):
		self.options = options

	@property
	def dialect(self):
		return self.options.dialect

	def _table_sql(self) -> str:
		table = self.options.table
		if table is None:
			raise InvalidIdentifier("The table option must be set before building queries.")
		return self.dialect.escape_identifier(table)

	def _column_list(self, columns: Sequence[str]) -> str:
		return ", ".join(self.dialect.escape_identifier(c) for c in columns)

	# ---------- SELECT ----------
	def select(
		self,
		columns: Sequence[str] = (),
		where: Optional[Mapping[str, Any]] = None,
		order_by: Optional[SortSpec] = None,
		page: Optional[int] = None,
		page_size: Optional[int] = None,
		*,
		raw_order_by: bool = False,
	) -> SqlFragment:
		table_sql = self._table_sql()
		columns = list(columns or [])
		if columns:
			self.options.validate_columns(columns, "select")
			cols_sql = self._column_list(columns)
		else:
			cols_sql = "*"

		where_fragment = build_where(self.options, where)
		order_sql = build_order_by(self.options, order_by, raw=raw_order_by)
		page_sql = ""
		if page is not None or page_size is not None:
			page_sql = build_pagination(self.options, page, page_size)
			if not order_sql and self.dialect.pagination == PAGE_OFFSET_FETCH:
				raise InvalidPagination("Results must be sorted to use an offset.")

		sql = join_sql([f"SELECT {cols_sql} FROM {table_sql}", where_fragment.sql, order_sql, page_sql])
		return SqlFragment(sql, where_fragment.params)

	# ---------- UPDATE ----------
	def update(self, set_values: Mapping[str, Any], where: Mapping[str, Any]) -> SqlFragment:
		if not set_values or not where:
			raise EmptyUpdateClause("Set and where mappings cannot be empty.")

		table_sql = self._table_sql()
		self.options.validate_columns(set_values.keys(), "update")

		set_items = list(set_values.items())
		set_sql = ", ".join(
			f"{self.dialect.escape_identifier(column)} = {self.dialect.placeholder}"
			for column, _ in set_items
		)
		where_fragment = build_where(self.options, where)

		sql = join_sql([f"UPDATE {table_sql} SET {set_sql}", where_fragment.sql])
		return SqlFragment(sql, [v for _, v in set_items] + list(where_fragment.params))

	# ---------- DELETE ----------
	def delete(self, where: Mapping[str, Any]) -> SqlFragment:
		table_sql = self._table_sql()
		where_fragment = build_where(self.options, where)
		return SqlFragment(join_sql([f"DELETE FROM {table_sql}", where_fragment.sql]), where_fragment.params)

	# ---------- INSERT ----------
	def _validate_insert_columns(self, columns: Sequence[str]) -> tuple[str, ...]:
		if isinstance(columns, str):
			raise MissingInsertData("Insert columns must be a sequence of column names.")
		columns = tuple(columns or ())
		if not columns:
			raise MissingInsertData("Columns and values to insert must be specified.")
		self.options.validate_columns(columns, "insert")
		return columns

	def _insert_fragment(self, table_sql: str, columns: tuple[str, ...], rows: Sequence[Sequence[Any]]) -> SqlFragment:
		row_sql = "(" + self.dialect.placeholders(len(columns)) + ")"
		values_sql = ",".join(row_sql for _ in rows)
		head = f"INSERT INTO {table_sql} ({self._column_list(columns)})"

		id_column = self.options.id_column
		if id_column is not None and self.dialect.id_strategy == IDS_OUTPUT:
			head += f" OUTPUT inserted.{self.dialect.escape_identifier(id_column)}"
		sql = f"{head} VALUES {values_sql}"
		if id_column is not None and self.dialect.id_strategy == IDS_RETURNING:
			sql += f" RETURNING {self.dialect.escape_identifier(id_column)}"

		params = [value for row in rows for value in row]
		return SqlFragment(sql, params)

	def insert(self, columns: Sequence[str], row: Sequence[Any]) -> SqlFragment:
		"""
		Build a single-row INSERT.
		"""
		columns = self._validate_insert_columns(columns)
		if row is None or not len(row):
			raise MissingInsertData("Columns and values to insert must be specified.")
		if len(row) != len(columns):
			raise InsertRowMismatch(f"Expected {len(columns)} values, got {len(row)}.")
		return self._insert_fragment(self._table_sql(), columns, [row])

	def plan_bulk_insert(self, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> BulkInsertPlan:
		"""
		Split a multi-row insert into statements that each stay within max_params.

		Rows keep their input order; batch i covers a contiguous slice of `rows`.
		"""
		columns = self._validate_insert_columns(columns)
		if not rows or rows[0] is None or not len(rows[0]):
			raise MissingInsertData("Columns and values to insert must be specified.")

		width = len(columns)
		for idx, row in enumerate(rows):
			if row is None or len(row) != width:
				raise InsertRowMismatch(f"rows[{idx}] must contain {width} values.")

		max_params = self.options.max_params
		if width > max_params:
			raise RowTooWide(width, max_params)

		table_sql = self._table_sql()
		per_statement = max_params // width
		if self.dialect.max_insert_rows is not None:
			per_statement = min(per_statement, self.dialect.max_insert_rows)
		batches = []
		for start in range(0, len(rows), per_statement):
			chunk = rows[start:start + per_statement]
			batches.append(BulkInsertBatch(self._insert_fragment(table_sql, columns, chunk), start, len(chunk)))

		logger.debug(
			"Planned insert of %s rows into %s as %s statement(s) of up to %s rows",
			len(rows),
			self.options.table,
			len(batches),
			per_statement,
		)
		return BulkInsertPlan(columns, tuple(batches), per_statement)
