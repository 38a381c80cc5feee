from __future__ import annotations

import warnings
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any

from sqlsieve.dialects import Dialect
from sqlsieve.errors import (
	EmptyFilterList,
	InvalidOperator,
	InvalidOperatorForNull,
	OperatorValueMismatch,
)


@dataclass(frozen=True)
class SqlFragment:
	"""
	SQL text with its bound parameters, in placeholder order.
	"""
	sql: str
	params: tuple[Any, ...] = ()

	def __post_init__(self):
		object.__setattr__(self, "params", tuple(self.params))


class Operator(str, Enum):
	EQ = "eq"
	NE = "ne"
	LT = "lt"
	LE = "le"
	GT = "gt"
	GE = "ge"
	LK = "lk"
	NL = "nl"
	NU = "nu"
	NN = "nn"


OPERATOR_SQL = MappingProxyType({
	Operator.EQ: "=",
	Operator.NE: "<>",
	Operator.LT: "<",
	Operator.LE: "<=",
	Operator.GT: ">",
	Operator.GE: ">=",
	Operator.LK: "LIKE",
	Operator.NL: "NOT LIKE",
	Operator.NU: "IS NULL",
	Operator.NN: "IS NOT NULL",
})

NULL_CHECK_PLACEHOLDER = ""

_MEMBERSHIP = frozenset({Operator.EQ, Operator.NE})
_PATTERN = frozenset({Operator.LK, Operator.NL})
_NULL_CHECKS = frozenset({Operator.NU, Operator.NN})


def is_list_value(value: Any) -> bool:
	return isinstance(value, (list, tuple))


def parse_operator(code: Any) -> Operator:
	try:
		return Operator(code)
	except ValueError:
		raise InvalidOperator(f"{code!r} is not a valid operator") from None


def compile_filter(dialect: Dialect, column: str, value: Any) -> SqlFragment:
	"""
	Compile one column's filter into SQL conditions joined with AND.

	`column` must already be whitelisted; it is escaped here. `value` is a
	scalar (equality), a list (IN), or a mapping of operator code to value:

		compile_filter(MYSQL, "age", {"ge": 18, "lt": 65})
		-> SqlFragment("`age` >= ? AND `age` < ?", (18, 65))

	A None value under eq/ne emits a DeprecationWarning attributed to the
	caller of compile_filter.
	"""
	escaped = dialect.escape_identifier(column)

	if isinstance(value, dict):
		if not value:
			raise EmptyFilterList(f"Filter conditions cannot be empty for {column} column")
		pairs = list(value.items())
	else:
		if is_list_value(value) and not value:
			raise EmptyFilterList(f"Filter conditions cannot be empty for {column} column")
		pairs = [(Operator.EQ, value)]

	conditions: list[str] = []
	params: list[Any] = []

	for code, val in pairs:
		op = parse_operator(code)

		if val is None:
			if op is Operator.EQ:
				warnings.warn('Use the "nu" operator to filter by null values', DeprecationWarning, stacklevel=2)
				conditions.append(f"{escaped} IS NULL")
			elif op is Operator.NE:
				warnings.warn('Use the "nn" operator to filter out null values', DeprecationWarning, stacklevel=2)
				conditions.append(f"{escaped} IS NOT NULL")
			else:
				raise InvalidOperatorForNull(f"{op.value} operator cannot be used with a null value")
		elif op in _NULL_CHECKS:
			if not (isinstance(val, str) and val == NULL_CHECK_PLACEHOLDER):
				raise OperatorValueMismatch(f"{op.value} operator can only be used with a blank value")
			conditions.append(f"{escaped} {OPERATOR_SQL[op]}")
		elif not is_list_value(val):
			conditions.append(f"{escaped} {OPERATOR_SQL[op]} {dialect.placeholder}")
			params.append(val)
		elif not val:
			raise EmptyFilterList(f"{op.value} filter list cannot be empty for {column} column")
		elif op in _MEMBERSHIP:
			keyword = "NOT IN" if op is Operator.NE else "IN"
			conditions.append(f"{escaped} {keyword}({dialect.placeholders(len(val))})")
			params.extend(val)
		elif op in _PATTERN:
			for pattern in val:
				conditions.append(f"{escaped} {OPERATOR_SQL[op]} {dialect.placeholder}")
				params.append(pattern)
		else:
			# ordering against several values has no meaning
			raise OperatorValueMismatch(f"{op.value} operator cannot be used with a list")

	return SqlFragment(" AND ".join(conditions), params)
