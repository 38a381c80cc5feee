import math
import unittest

from sqlsieve.errors import (
    EmptyUpdateClause,
    InsertRowMismatch,
    InvalidIdentifier,
    InvalidPagination,
    MissingInsertData,
    RowTooWide,
    UnknownColumn,
)
from sqlsieve.options import Options
from sqlsieve.statements import QueryBuilder

USER_COLUMNS = ["user_id", "fname", "lname", "dob"]


def builder(dialect: str = "mysql", **kwargs) -> QueryBuilder:
    kwargs.setdefault("table", "Users")
    kwargs.setdefault("columns", USER_COLUMNS)
    return QueryBuilder(Options(dialect=dialect, **kwargs))


class TestSelect(unittest.TestCase):
    def test_select_all(self):
        fragment = builder().select()
        self.assertEqual(fragment.sql, "SELECT * FROM `Users`")
        self.assertEqual(fragment.params, ())

    def test_clause_order(self):
        fragment = builder().select(
            ["user_id", "fname"],
            where={"lname": {"lk": "B%"}, "user_id": [1, 2]},
            order_by={"fname": "desc"},
            page=2,
            page_size=10,
        )
        self.assertEqual(
            fragment.sql,
            "SELECT `user_id`, `fname` FROM `Users` WHERE `lname` LIKE ? AND `user_id` IN(?,?) "
            "ORDER BY `fname` DESC LIMIT 10 OFFSET 10",
        )
        self.assertEqual(fragment.params, ("B%", 1, 2))

    def test_pagination_requires_both_values(self):
        with self.assertRaises(InvalidPagination):
            builder().select(page=1)

    def test_raw_order_by(self):
        fragment = builder().select(order_by=[("RAND()", "asc")], raw_order_by=True)
        self.assertEqual(fragment.sql, "SELECT * FROM `Users` ORDER BY RAND() ASC")

    def test_unknown_columns_rejected_everywhere(self):
        b = builder()
        attempts = [
            lambda: b.select(["password"]),
            lambda: b.select(where={"password": "x"}),
            lambda: b.select(order_by=["password"]),
            lambda: b.update({"password": "x"}, {"user_id": 1}),
            lambda: b.update({"fname": "x"}, {"password": 1}),
            lambda: b.delete({"password": 1}),
            lambda: b.insert(["password"], ["x"]),
            lambda: b.plan_bulk_insert(["password"], [["x"]]),
        ]
        for attempt in attempts:
            with self.subTest(attempt=attempt):
                with self.assertRaises(UnknownColumn):
                    attempt()

    def test_missing_table(self):
        b = QueryBuilder(Options(dialect="mysql", columns=USER_COLUMNS))
        with self.assertRaises(InvalidIdentifier):
            b.select()
        with self.assertRaises(InvalidIdentifier):
            b.delete({"user_id": 1})

    def test_qualified_table(self):
        fragment = builder("sqlserver", table="dbo.Users").select(["user_id"], order_by=["user_id"], page=1, page_size=5)
        self.assertEqual(
            fragment.sql,
            "SELECT [user_id] FROM [dbo].[Users] ORDER BY [user_id] ASC OFFSET 0 ROWS FETCH NEXT 5 ROWS ONLY",
        )

    def test_sqlserver_offset_requires_order_by(self):
        with self.assertRaisesRegex(InvalidPagination, "sorted"):
            builder("sqlserver").select(page=1, page_size=5)
        self.assertEqual(builder().select(page=1, page_size=5).sql, "SELECT * FROM `Users` LIMIT 5 OFFSET 0")

    def test_idempotent(self):
        b = builder()
        args = (["fname"], {"user_id": [3, 4]}, {"fname": "asc"}, 1, 50)
        self.assertEqual(b.select(*args), b.select(*args))


class TestUpdateDelete(unittest.TestCase):
    def test_update_params_follow_set_then_where(self):
        fragment = builder().update({"fname": "Ted", "lname": "Brown"}, {"user_id": [1, 2], "dob": {"nn": ""}})
        self.assertEqual(
            fragment.sql,
            "UPDATE `Users` SET `fname` = ?, `lname` = ? WHERE `user_id` IN(?,?) AND `dob` IS NOT NULL",
        )
        self.assertEqual(fragment.params, ("Ted", "Brown", 1, 2))

    def test_update_requires_set_and_where(self):
        b = QueryBuilder(Options(dialect="mysql", columns=USER_COLUMNS))
        with self.assertRaises(EmptyUpdateClause):
            b.update({}, {"user_id": 3})
        with self.assertRaises(EmptyUpdateClause):
            b.update({"fname": "x"}, {})

    def test_delete(self):
        fragment = builder("postgresql", table="public.users").delete({"user_id": 5})
        self.assertEqual(fragment.sql, 'DELETE FROM "public"."users" WHERE "user_id" = %s')
        self.assertEqual(fragment.params, (5,))

    def test_delete_without_filter(self):
        self.assertEqual(builder().delete({}).sql, "DELETE FROM `Users`")


class TestInsert(unittest.TestCase):
    def test_single_row(self):
        fragment = builder().insert(["fname", "lname"], ["Theodore", "Brown"])
        self.assertEqual(fragment.sql, "INSERT INTO `Users` (`fname`, `lname`) VALUES (?,?)")
        self.assertEqual(fragment.params, ("Theodore", "Brown"))

    def test_single_row_with_returning_and_output(self):
        pg = builder("postgresql", id_column="user_id").insert(["fname"], ["A"])
        self.assertEqual(pg.sql, 'INSERT INTO "Users" ("fname") VALUES (%s) RETURNING "user_id"')

        ss = builder("sqlserver", id_column="user_id").insert(["fname"], ["A"])
        self.assertEqual(ss.sql, "INSERT INTO [Users] ([fname]) OUTPUT inserted.[user_id] VALUES (?)")

    def test_missing_data(self):
        b = builder()
        for columns, row in [([], ["x"]), (["fname"], []), ("fname", ["x"])]:
            with self.subTest(columns=columns, row=row):
                with self.assertRaises(MissingInsertData):
                    b.insert(columns, row)
        with self.assertRaises(InsertRowMismatch):
            b.insert(["fname", "lname"], ["only one"])


class TestBulkInsertPlan(unittest.TestCase):
    def test_single_statement(self):
        plan = builder().plan_bulk_insert(["fname", "lname"], [["a", "b"], ["c", "d"]])
        self.assertEqual(plan.statement_count, 1)
        batch = plan.batches[0]
        self.assertEqual(batch.fragment.sql, "INSERT INTO `Users` (`fname`, `lname`) VALUES (?,?),(?,?)")
        self.assertEqual(batch.fragment.params, ("a", "b", "c", "d"))
        self.assertEqual((batch.start, batch.row_count, batch.stop), (0, 2, 2))

    def test_splits_at_parameter_limit(self):
        rows = [[i] for i in range(70000)]
        plan = builder().plan_bulk_insert(["user_id"], rows)
        self.assertEqual(plan.statement_count, 2)
        self.assertEqual([b.row_count for b in plan.batches], [65536, 4464])
        self.assertEqual(plan.batches[1].start, 65536)
        self.assertEqual(plan.batches[1].fragment.params[0], 65536)
        self.assertEqual(plan.row_count, 70000)

    def test_exact_multiple(self):
        rows = [[i, i] for i in range(12)]
        plan = builder(max_params=8).plan_bulk_insert(["fname", "lname"], rows)
        self.assertEqual(plan.rows_per_statement, 4)
        self.assertEqual([b.row_count for b in plan.batches], [4, 4, 4])
        for batch in plan.batches:
            self.assertLessEqual(len(batch.fragment.params), 8)
            self.assertEqual(batch.fragment.sql.count("?"), len(batch.fragment.params))

    def test_statement_count_formula(self):
        for n, width, max_params in [(1, 1, 1), (10, 3, 7), (100, 4, 100), (101, 4, 100), (5, 2, 2100)]:
            with self.subTest(n=n, width=width, max_params=max_params):
                columns = USER_COLUMNS[:width]
                rows = [list(range(width)) for _ in range(n)]
                plan = builder(max_params=max_params).plan_bulk_insert(columns, rows)
                self.assertEqual(plan.statement_count, math.ceil(n / (max_params // width)))

    def test_row_order_preserved(self):
        rows = [[f"r{i}"] for i in range(7)]
        plan = builder(max_params=3).plan_bulk_insert(["fname"], rows)
        flattened = [p for b in plan.batches for p in b.fragment.params]
        self.assertEqual(flattened, [f"r{i}" for i in range(7)])

    def test_row_too_wide(self):
        with self.assertRaises(RowTooWide) as ctx:
            builder(max_params=3).plan_bulk_insert(USER_COLUMNS, [[1, 2, 3, 4]])
        self.assertEqual((ctx.exception.width, ctx.exception.max_params), (4, 3))

    def test_invalid_rows(self):
        b = builder()
        with self.assertRaises(MissingInsertData):
            b.plan_bulk_insert(["fname"], [])
        with self.assertRaises(MissingInsertData):
            b.plan_bulk_insert(["fname"], [[]])
        with self.assertRaises(MissingInsertData):
            b.plan_bulk_insert([], [["x"]])
        with self.assertRaises(InsertRowMismatch):
            b.plan_bulk_insert(["fname", "lname"], [["a", "b"], ["c"]])

    def test_sqlserver_caps_rows_per_values_list(self):
        plan = builder("sqlserver").plan_bulk_insert(["user_id"], [[i] for i in range(2100)])
        self.assertEqual(plan.rows_per_statement, 1000)
        self.assertEqual(plan.statement_count, 3)
        self.assertEqual([b.row_count for b in plan.batches], [1000, 1000, 100])
        self.assertEqual([b.start for b in plan.batches], [0, 1000, 2000])

    def test_sqlserver_parameter_limit_still_applies(self):
        plan = builder("sqlserver").plan_bulk_insert(USER_COLUMNS, [[1, 2, 3, 4]] * 600)
        self.assertEqual([b.row_count for b in plan.batches], [525, 75])

    def test_returning_on_every_batch(self):
        plan = builder("postgresql", id_column="user_id", max_params=2).plan_bulk_insert(["fname"], [["a"], ["b"], ["c"]])
        self.assertEqual(plan.statement_count, 2)
        for batch in plan.batches:
            self.assertTrue(batch.fragment.sql.endswith('RETURNING "user_id"'))


if __name__ == "__main__":
    unittest.main()
