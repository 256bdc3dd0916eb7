from __future__ import annotations

from typing import Any, Callable, Optional

import psycopg
from pydantic import ValidationError

from app.errors import DatabaseError
from app.schemas.order import OrderRow

# created_at is rendered by the server so clients get PostgreSQL's text form
ORDERS_QUERY = "SELECT id, user_id, side, price, amount, status, created_at::text FROM orders"
ORDER_COLUMNS = ("id", "user_id", "side", "price", "amount", "status", "created_at")


class OrderBookRepository:
    """Reads the ``orders`` table over a fresh connection per call."""

    def __init__(self, dsn: str, *, connect: Optional[Callable[[str], Any]] = None) -> None:
        self.dsn = dsn
        self._connect = connect or psycopg.connect

    @staticmethod
    def _to_row(record: tuple) -> OrderRow:
        if len(record) != len(ORDER_COLUMNS):
            raise ValueError(f"expected {len(ORDER_COLUMNS)} columns, got {len(record)}")
        for column, value in zip(ORDER_COLUMNS, record):
            if value is None:
                raise ValueError(f"null value in column {column}")

        order_id, user_id, side, price, amount, status, created_at = record
        return OrderRow(
            id=int(order_id),
            user_id=int(user_id),
            side=str(side),
            price=float(price),
            amount=float(amount),
            status=str(status),
            created_at=str(created_at),
        )

    def list_orders(self) -> list[OrderRow]:
        try:
            with self._connect(self.dsn) as conn:
                with conn.cursor() as cur:
                    cur.execute(ORDERS_QUERY)
                    records = cur.fetchall()
            return [self._to_row(record) for record in records]
        except psycopg.Error as exc:
            raise DatabaseError(str(exc)) from exc
        except (TypeError, ValueError, ValidationError) as exc:
            raise DatabaseError(f"unexpected orders row: {exc}") from exc
