import logging
from typing import Any, Iterable, Optional

import psycopg2

from sqlsieve.errors import QueryExecutionFailed
from sqlsieve.results import RawResult

logger = logging.getLogger(__name__)


class PsycopgExecutor:
	"""
	Executes statements on a single psycopg2 connection.

	Outside an explicit transaction each statement is committed on success and
	rolled back on error. Between `begin()` and `commit()`/`rollback()` the
	caller owns the outcome.

	Create from an existing connection:
		executor = PsycopgExecutor(conn)

	Or connect directly (kwargs go to psycopg2.connect):
		executor = PsycopgExecutor.connect(dbname="app", user="postgres", host="localhost")
	"""

	def __init__(self, connection):
		self.connection = connection
		self._in_transaction = False

	@classmethod
	def connect(cls, **conn_kwargs) -> "PsycopgExecutor":
		logger.debug(
			"Connecting to %s@%s/%s",
			conn_kwargs.get("user", ""),
			conn_kwargs.get("host", ""),
			conn_kwargs.get("dbname") or conn_kwargs.get("database", ""),
		)
		try:
			conn = psycopg2.connect(**conn_kwargs)
		except psycopg2.Error as exc:
			raise QueryExecutionFailed("Failed to connect", diagnostics=_diagnostics(exc)) from exc
		return cls(conn)

	def __repr__(self) -> str:
		return f"<PsycopgExecutor in_transaction={self._in_transaction}>"

	@property
	def in_transaction(self) -> bool:
		return self._in_transaction

	@staticmethod
	def _rows_from_cursor(cur) -> list[dict]:
		if cur.description is None:
			return []
		colnames = [d[0] for d in cur.description]
		rows = cur.fetchall()
		return [dict(zip(colnames, r)) for r in rows]

	def execute(self, sql: str, params: Optional[Iterable[Any]] = None) -> RawResult:
		params = list(params or [])
		conn = self.connection
		try:
			with conn.cursor() as cur:
				cur.execute(sql, params)
				rows = self._rows_from_cursor(cur)
				affected = max(cur.rowcount, 0)
			if not self._in_transaction:
				conn.commit()
		except psycopg2.Error as exc:
			if not self._in_transaction:
				try:
					conn.rollback()
				except psycopg2.Error:
					logger.exception("Rollback after failed query also failed")
			raise QueryExecutionFailed("Query failed", sql, params, _diagnostics(exc)) from exc
		return RawResult(rows, affected)

	# ---------- Transaction primitives ----------
	def begin(self) -> None:
		if self._in_transaction:
			raise QueryExecutionFailed("Failed to begin transaction", diagnostics="transaction already in progress")
		# psycopg2 opens the transaction implicitly on the next statement
		if self.connection.autocommit:
			self.connection.autocommit = False
		self._in_transaction = True

	def commit(self) -> None:
		try:
			self.connection.commit()
		except psycopg2.Error as exc:
			raise QueryExecutionFailed("Failed to commit transaction", diagnostics=_diagnostics(exc)) from exc
		finally:
			self._in_transaction = False

	def rollback(self) -> None:
		try:
			self.connection.rollback()
		except psycopg2.Error as exc:
			raise QueryExecutionFailed("Failed to roll back transaction", diagnostics=_diagnostics(exc)) from exc
		finally:
			self._in_transaction = False

	def close(self) -> None:
		if self._in_transaction:
			logger.warning("Closing connection with an open transaction; pending changes are discarded")
		self._in_transaction = False
		self.connection.close()


def _diagnostics(exc: BaseException) -> dict[str, Any]:
	return {
		"pgcode": getattr(exc, "pgcode", None),
		"pgerror": getattr(exc, "pgerror", None),
		"message": str(exc),
	}
