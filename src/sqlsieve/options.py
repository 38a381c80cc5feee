from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from sqlsieve.dialects import Dialect, get_dialect
from sqlsieve.errors import ConfigurationError, UnknownColumn, UnknownOption

logger = logging.getLogger(__name__)

COMMON_OPTION_KEYS = ("table", "columns", "max_params", "max_page_size")
DEFAULT_MAX_PAGE_SIZE = 1000


@dataclass(frozen=True)
class Options:
	"""
	Per-handle query options: target table, column whitelist and dialect limits.

	Options are immutable. Reconfigure with `replace()`, which validates the
	supplied keys and returns a new object:

		opts = Options(dialect="mysql", table="Users", columns=["user_id", "fname"])
		opts = opts.replace(table="Customers")
	"""
	dialect: Dialect
	table: Optional[str] = None
	columns: tuple[str, ...] = ()
	max_params: Optional[int] = None
	max_page_size: int = DEFAULT_MAX_PAGE_SIZE
	id_column: Optional[str] = None

	def __post_init__(self):
		dialect = get_dialect(self.dialect)
		object.__setattr__(self, "dialect", dialect)

		columns = self.columns
		if isinstance(columns, str):
			raise ConfigurationError("columns must be a sequence of column names, not a string.")
		columns = tuple(columns or ())
		bad = [c for c in columns if not isinstance(c, str) or not c]
		if bad:
			raise ConfigurationError(f"columns must be non-empty strings: {bad}")
		object.__setattr__(self, "columns", columns)

		if self.max_params is None:
			object.__setattr__(self, "max_params", dialect.max_params)
		elif not _positive_int(self.max_params):
			raise ConfigurationError("max_params must be a positive integer.")
		elif self.max_params > dialect.max_params:
			raise ConfigurationError(
				f"max_params cannot exceed the {dialect.name} limit of {dialect.max_params}."
			)

		if not _positive_int(self.max_page_size):
			raise ConfigurationError("max_page_size must be a positive integer.")

		if self.id_column is not None and "id_column" not in dialect.option_keys:
			raise UnknownOption(["id_column"], self.valid_keys(dialect))

	@staticmethod
	def valid_keys(dialect: Dialect) -> tuple[str, ...]:
		return COMMON_OPTION_KEYS + tuple(dialect.option_keys)

	def replace(self, **overrides) -> "Options":
		"""
		Return new options with `overrides` applied. Unrecognized keys raise UnknownOption.
		"""
		valid = self.valid_keys(self.dialect)
		unknown = [k for k in overrides if k not in valid]
		if unknown:
			raise UnknownOption(unknown, valid)
		logger.debug("Reconfiguring %s options: %s", self.dialect.name, sorted(overrides))
		return dataclasses.replace(self, **overrides)

	def as_dict(self) -> dict[str, Any]:
		out = {k: getattr(self, k) for k in self.valid_keys(self.dialect)}
		out["dialect"] = self.dialect.name
		out["columns"] = list(self.columns)
		return out

	def validate_columns(self, columns: Iterable[str], label: str = "query") -> None:
		"""
		Raise UnknownColumn unless every column is in the whitelist.
		"""
		whitelist = set(self.columns)
		invalid = [c for c in columns if not isinstance(c, str) or c not in whitelist]
		if invalid:
			raise UnknownColumn(invalid, label)

	@classmethod
	def from_dict(cls, d: dict[str, Any]) -> "Options":
		if not isinstance(d, dict):
			raise ConfigurationError(f"Options must be a mapping, got {type(d).__name__}")
		if "dialect" not in d:
			raise ConfigurationError("Options mapping requires a 'dialect' key.")
		try:
			dialect = get_dialect(d["dialect"])
		except KeyError as exc:
			raise ConfigurationError(str(exc)) from exc

		rest = {k: v for k, v in d.items() if k != "dialect"}
		valid = cls.valid_keys(dialect)
		unknown = [k for k in rest if k not in valid]
		if unknown:
			raise UnknownOption(unknown, valid)
		return cls(dialect=dialect, **rest)


def load_options(path: str | Path) -> Options:
	"""
	Load options from a JSON file holding a single mapping, e.g.

		{"dialect": "postgresql", "table": "users", "columns": ["id", "name"], "id_column": "id"}
	"""
	json_path = Path(path)
	if not json_path.exists() or not json_path.is_file():
		raise ConfigurationError(f"Options file not found: {json_path}")
	try:
		payload = json.loads(json_path.read_text(encoding="utf-8"))
	except Exception as exc:
		raise ConfigurationError(f"Failed to parse JSON options: {json_path}") from exc
	return Options.from_dict(payload)


def _positive_int(value: Any) -> bool:
	return isinstance(value, int) and not isinstance(value, bool) and value > 0
