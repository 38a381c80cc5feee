from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional, Protocol, Sequence

from sqlsieve.clauses import SortSpec
from sqlsieve.errors import InsertRowMismatch, MissingInsertData
from sqlsieve.operators import SqlFragment
from sqlsieve.options import Options
from sqlsieve.results import BulkInsertResult, InsertResult, RawResult, SqlResult
from sqlsieve.selector import Selector
from sqlsieve.statements import QueryBuilder

logger = logging.getLogger(__name__)


class Executor(Protocol):
	"""
	Execution collaborator. Every method raises QueryExecutionFailed on error.
	"""

	def execute(self, sql: str, params: Sequence[Any]) -> RawResult: ...
	def begin(self) -> None: ...
	def commit(self) -> None: ...
	def rollback(self) -> None: ...


class Database:
	"""
	Runs whitelisted statements for one table against an executor.

		db = Database(PsycopgExecutor.connect(dbname="app"), Options(dialect="postgresql", table="users", columns=["id", "name"], id_column="id"))
		result = db.insert_rows(["name"], [["a"], ["b"]])
		db.update({"name": "c"}, {"id": result.ids[0]})

	Options may be swapped with `set_options`; statements already built are
	unaffected, later ones use the new options.
	"""

	def __init__(self, executor: Executor, options: Options):
		self.executor = executor
		self._options = options

	def __repr__(self) -> str:
		return f"<Database {self._options.dialect.name} table={self._options.table!r}>"

	@property
	def options(self) -> Options:
		return self._options

	def set_options(self, **overrides) -> Options:
		self._options = self._options.replace(**overrides)
		return self._options

	def builder(self) -> QueryBuilder:
		return QueryBuilder(self._options)

	# ---------- Execution helpers ----------
	def _execute(self, fragment: SqlFragment) -> RawResult:
		logger.debug("Executing %s with %s params", fragment.sql, len(fragment.params))
		return self.executor.execute(fragment.sql, list(fragment.params))

	def run(self, fragment: SqlFragment) -> SqlResult:
		raw = self._execute(fragment)
		return SqlResult(raw.rows, raw.affected, fragment.sql)

	# ---------- Transactions ----------
	def begin(self) -> None:
		self.executor.begin()

	def commit(self) -> None:
		self.executor.commit()

	def rollback(self) -> None:
		self.executor.rollback()

	@contextmanager
	def transaction(self) -> Iterator["Database"]:
		"""
		Commit once on success, roll back on error.

			with db.transaction():
				db.insert_rows(cols, rows)
				db.delete({"id": stale_ids})
		"""
		self.begin()
		try:
			yield self
			self.commit()
		except Exception:
			try:
				self.rollback()
			except Exception:
				logger.exception("Rollback failed")
			raise

	# ---------- SELECT ----------
	def select(
		self,
		columns: Sequence[str] = (),
		where: Optional[Mapping[str, Any]] = None,
		order_by: Optional[SortSpec] = None,
		page: Optional[int] = None,
		page_size: Optional[int] = None,
	) -> SqlResult:
		return self.run(self.builder().select(columns, where, order_by, page, page_size))

	def selector(self, columns: Sequence[str] = ()) -> Selector:
		return Selector(self, columns)

	# ---------- INSERT ----------
	def insert(self, columns: Sequence[str], row: Sequence[Any]) -> InsertResult:
		fragment = self.builder().insert(columns, row)
		raw = self._execute(fragment)
		ids = self._options.dialect.extract_ids(raw, 1, self._options.id_column)
		return InsertResult(ids[0] if ids else None, raw.affected)

	def insert_row(self, col_vals: Mapping[str, Any]) -> InsertResult:
		"""
		Insert a single row from a column -> value mapping.
		"""
		return self.insert(list(col_vals.keys()), list(col_vals.values()))

	def insert_rows(self, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> BulkInsertResult:
		"""
		Insert many rows, using as many statements as the parameter limit requires.

		Batches run in order. If one fails the exception propagates and earlier
		batches are left to the enclosing transaction, if any.
		"""
		plan = self.builder().plan_bulk_insert(columns, rows)
		dialect = self._options.dialect
		id_column = self._options.id_column

		ids: list[Any] = []
		affected = 0
		for batch in plan.batches:
			raw = self._execute(batch.fragment)
			ids.extend(dialect.extract_ids(raw, batch.row_count, id_column))
			affected += raw.affected

		if plan.statement_count > 1:
			logger.info(
				"Inserted %s rows into %s using %s statements",
				plan.row_count,
				self._options.table,
				plan.statement_count,
			)
		return BulkInsertResult(ids, affected, plan.statement_count)

	def insert_assoc_rows(self, rows: Sequence[Mapping[str, Any]]) -> BulkInsertResult:
		"""
		Bulk insert from mappings that all share the same keys.
		"""
		if not rows:
			raise MissingInsertData("rows must be a non-empty sequence of mappings.")
		columns = list(rows[0].keys())
		expected = set(columns)
		value_rows: list[list[Any]] = []
		for idx, row in enumerate(rows):
			if set(row.keys()) != expected:
				raise InsertRowMismatch(f"rows[{idx}] must contain the same keys as rows[0].")
			value_rows.append([row[c] for c in columns])
		return self.insert_rows(columns, value_rows)

	# ---------- UPDATE / DELETE ----------
	def update(self, set_values: Mapping[str, Any], where: Mapping[str, Any]) -> int:
		return self._execute(self.builder().update(set_values, where)).affected

	def delete(self, where: Mapping[str, Any]) -> int:
		return self._execute(self.builder().delete(where)).affected
