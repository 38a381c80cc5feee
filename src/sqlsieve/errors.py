from __future__ import annotations

from typing import Any, Iterable, Optional


class SqlBuildError(ValueError):
	"""
	Base class for every failure raised while validating input or building SQL.
	"""


class InvalidIdentifier(SqlBuildError):
	pass


class UnknownColumn(SqlBuildError):
	"""
	Raised when a column is not present in the configured whitelist.
	"""

	def __init__(self, columns: Iterable[str], label: str = "query"):
		self.columns = list(columns)
		super().__init__(f"Invalid columns for {label}: {self.columns}")


class InvalidOperator(SqlBuildError):
	pass


class OperatorValueMismatch(SqlBuildError):
	pass


class InvalidOperatorForNull(SqlBuildError):
	pass


class EmptyFilterList(SqlBuildError):
	pass


class EmptyUpdateClause(SqlBuildError):
	pass


class MissingInsertData(SqlBuildError):
	pass


class InsertRowMismatch(SqlBuildError):
	pass


class InvalidPagination(SqlBuildError):
	pass


class InvalidSortDirection(SqlBuildError):
	pass


class RowTooWide(SqlBuildError):
	def __init__(self, width: int, max_params: int):
		self.width = width
		self.max_params = max_params
		super().__init__(
			f"A single row binds {width} parameters, more than the {max_params} allowed per statement."
		)


class DuplicateClause(SqlBuildError):
	pass


class ConfigurationError(ValueError):
	pass


class UnknownOption(ConfigurationError):
	def __init__(self, keys: Iterable[str], valid: Iterable[str]):
		self.keys = sorted(keys)
		self.valid = sorted(valid)
		super().__init__(f"Invalid options {self.keys}. Recognized options: {self.valid}")


class QueryExecutionFailed(RuntimeError):
	"""
	Raised by executors when a statement (or transaction primitive) fails.

	Carries the failing SQL text and parameters so callers can log them.
	"""

	def __init__(
		self,
		message: str,
		sql: str = "",
		params: Optional[Iterable[Any]] = None,
		diagnostics: Any = None,
	):
		super().__init__(message)
		self.sql = sql
		self.params = list(params or [])
		self.diagnostics = diagnostics
