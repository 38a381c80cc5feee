from sqlsieve.database import Database, Executor
from sqlsieve.dialects import MYSQL, POSTGRESQL, SQLSERVER, Dialect, get_dialect
from sqlsieve.errors import (
	ConfigurationError,
	DuplicateClause,
	EmptyFilterList,
	EmptyUpdateClause,
	InsertRowMismatch,
	InvalidIdentifier,
	InvalidOperator,
	InvalidOperatorForNull,
	InvalidPagination,
	InvalidSortDirection,
	MissingInsertData,
	OperatorValueMismatch,
	QueryExecutionFailed,
	RowTooWide,
	SqlBuildError,
	UnknownColumn,
	UnknownOption,
)
from sqlsieve.operators import Operator, SqlFragment, compile_filter
from sqlsieve.options import Options, load_options
from sqlsieve.results import BulkInsertResult, InsertResult, RawResult, SqlResult
from sqlsieve.selector import Selector
from sqlsieve.statements import BulkInsertBatch, BulkInsertPlan, QueryBuilder

__all__ = [
	"BulkInsertBatch",
	"BulkInsertPlan",
	"BulkInsertResult",
	"ConfigurationError",
	"Database",
	"Dialect",
	"DuplicateClause",
	"EmptyFilterList",
	"EmptyUpdateClause",
	"Executor",
	"InsertResult",
	"InsertRowMismatch",
	"InvalidIdentifier",
	"InvalidOperator",
	"InvalidOperatorForNull",
	"InvalidPagination",
	"InvalidSortDirection",
	"MYSQL",
	"MissingInsertData",
	"Operator",
	"OperatorValueMismatch",
	"Options",
	"POSTGRESQL",
	"QueryBuilder",
	"QueryExecutionFailed",
	"RawResult",
	"RowTooWide",
	"SQLSERVER",
	"Selector",
	"SqlBuildError",
	"SqlFragment",
	"SqlResult",
	"UnknownColumn",
	"UnknownOption",
	"compile_filter",
	"get_dialect",
	"load_options",
]
