from contextlib import contextmanager
from typing import Any

from psycopg import sql

from bookkeeper.db.pool import db_conn


def _where(filters: dict[str, Any] | None) -> tuple[sql.Composable, list[Any]]:
    if not filters:
        return sql.SQL(""), []
    clauses = []
    params: list[Any] = []
    for column, value in filters.items():
        if value is None:
            clauses.append(sql.SQL("{} IS NULL").format(sql.Identifier(column)))
        else:
            clauses.append(sql.SQL("{} = %s").format(sql.Identifier(column)))
            params.append(value)
    return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(clauses), params


class Store:
    """Statement-level access to one pooled connection.

    Each call is a single statement inside the connection's current
    transaction; callers decide when to ``commit``.
    """

    def __init__(self, conn) -> None:
        self.conn = conn
        self.cur = conn.cursor()

    def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        *,
        order_by: str = "id",
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        where, params = _where(filters)
        query = sql.SQL("SELECT * FROM {}").format(sql.Identifier(table)) + where
        query += sql.SQL(" ORDER BY {} {}").format(
            sql.Identifier(order_by),
            sql.SQL("DESC" if descending else "ASC"),
        )
        if limit is not None:
            query += sql.SQL(" LIMIT %s")
            params.append(limit)
        self.cur.execute(query, params)
        return self.cur.fetchall()

    def select_one(self, table: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        rows = self.select(table, filters, limit=1)
        return rows[0] if rows else None

    def insert(self, table: str, values: dict[str, Any], returning: str | None = "id") -> Any:
        columns = list(values)
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
            sql.Identifier(table),
            sql.SQL(", ").join(map(sql.Identifier, columns)),
            sql.SQL(", ").join(sql.Placeholder() * len(columns)),
        )
        if returning:
            query += sql.SQL(" RETURNING {}").format(sql.Identifier(returning))
        self.cur.execute(query, [values[c] for c in columns])
        if returning:
            return self.cur.fetchone()[returning]
        return None

    def update(self, table: str, row_id: int, values: dict[str, Any]) -> None:
        if not values:
            return
        columns = list(values)
        query = sql.SQL("UPDATE {} SET {} WHERE id = %s").format(
            sql.Identifier(table),
            sql.SQL(", ").join(sql.SQL("{} = %s").format(sql.Identifier(c)) for c in columns),
        )
        self.cur.execute(query, [values[c] for c in columns] + [row_id])

    def delete(self, table: str, filters: dict[str, Any]) -> int:
        where, params = _where(filters)
        self.cur.execute(sql.SQL("DELETE FROM {}").format(sql.Identifier(table)) + where, params)
        return self.cur.rowcount

    def fetch_all(self, query: str, params: list[Any] | tuple | None = None) -> list[dict[str, Any]]:
        self.cur.execute(query, params)
        return self.cur.fetchall()

    def commit(self) -> None:
        self.conn.commit()

    def rollback(self) -> None:
        self.conn.rollback()


@contextmanager
def store_session():
    with db_conn() as conn:
        yield Store(conn)
