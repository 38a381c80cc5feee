from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Optional, Sequence

from sqlsieve.clauses import SortSpec
from sqlsieve.errors import DuplicateClause, InvalidPagination
from sqlsieve.operators import SqlFragment
from sqlsieve.results import SqlResult
from sqlsieve.statements import QueryBuilder

if TYPE_CHECKING:
	from sqlsieve.database import Database


class Selector:
	"""
	Fluent SELECT builder. Each clause method may be called once.

		rows = db.selector(["id", "name"]).where({"age": {"ge": 18}}).order_by({"name": "asc"}).paginate(2, 25).fetch()
	"""

	def __init__(self, database: "Database", columns: Sequence[str] = ()):
		self._database = database
		self._columns = list(columns or [])
		self._where: Mapping[str, Any] = {}
		self._order_by: Optional[SortSpec] = None
		self._raw_order_by = False
		self._page: Optional[int] = None
		self._page_size: Optional[int] = None

	def where(self, filters: Mapping[str, Any]) -> "Selector":
		if self._where:
			raise DuplicateClause("where method can only be called once")
		self._where = dict(filters)
		return self

	def order_by(self, sort: SortSpec, raw: bool = False) -> "Selector":
		if self._order_by:
			raise DuplicateClause("order_by method can only be called once")
		self._order_by = sort
		self._raw_order_by = raw
		return self

	def paginate(self, page: int, page_size: int) -> "Selector":
		if self._page is not None:
			raise DuplicateClause("paginate method can only be called once")
		if page is None or page_size is None:
			raise InvalidPagination("Page and page size must both be provided.")
		self._page = page
		self._page_size = page_size
		return self

	def fragment(self) -> SqlFragment:
		return QueryBuilder(self._database.options).select(
			self._columns,
			where=self._where,
			order_by=self._order_by,
			page=self._page,
			page_size=self._page_size,
			raw_order_by=self._raw_order_by,
		)

	def fetch(self) -> SqlResult:
		return self._database.run(self.fragment())
