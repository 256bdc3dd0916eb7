import unittest
from decimal import Decimal
from unittest.mock import MagicMock

import psycopg
from fastapi.testclient import TestClient

from app.errors import DatabaseError
from app.integrations.orders_db import ORDERS_QUERY, OrderBookRepository
from app.main import app


def _fake_connect(records=None, error: Exception | None = None) -> MagicMock:
    cursor = MagicMock()
    cursor.__enter__.return_value = cursor
    cursor.fetchall.return_value = records or []

    conn = MagicMock()
    conn.__enter__.return_value = conn
    conn.cursor.return_value = cursor

    connect = MagicMock(return_value=conn)
    if error is not None:
        connect.side_effect = error
    connect.cursor = cursor
    return connect


class OrderBookRepositoryTest(unittest.TestCase):
    def test_rows_are_typed_and_connection_is_per_call(self):
        connect = _fake_connect(
            [(1, 7, 'BUY', Decimal('101.50'), Decimal('2'), 'OPEN', '2024-01-02 03:04:05.123+00')]
        )
        repo = OrderBookRepository('dbname=test', connect=connect)

        rows = repo.list_orders()
        repo.list_orders()

        self.assertEqual(connect.call_count, 2)
        connect.assert_called_with('dbname=test')
        connect.cursor.execute.assert_called_with(ORDERS_QUERY)
        self.assertEqual(rows[0].id, 1)
        self.assertEqual(rows[0].user_id, 7)
        self.assertEqual(rows[0].price, 101.5)
        self.assertEqual(rows[0].amount, 2.0)
        self.assertEqual(rows[0].created_at, '2024-01-02 03:04:05.123+00')
        self.assertIn('created_at::text', ORDERS_QUERY)

    def test_null_columns_become_database_error(self):
        for record in (
            (1, 2, 'BUY', Decimal('1'), Decimal('1'), None, None),
            (None, 2, 'BUY', Decimal('1'), Decimal('1'), 'OPEN', '2024-01-02 03:04:05+00'),
        ):
            repo = OrderBookRepository('dbname=test', connect=_fake_connect([record]))

            with self.assertRaises(DatabaseError) as ctx:
                repo.list_orders()
            self.assertIn('null value in column', str(ctx.exception))

    def test_driver_errors_become_database_error(self):
        repo = OrderBookRepository('dbname=test', connect=_fake_connect(error=psycopg.OperationalError('no server')))

        with self.assertRaises(DatabaseError) as ctx:
            repo.list_orders()
        self.assertEqual(str(ctx.exception), 'no server')


class OrderBookEndpointTest(unittest.TestCase):
    def setUp(self):
        self._original_repo = app.state.order_book
        self.client = TestClient(app)

    def tearDown(self):
        app.state.order_book = self._original_repo

    def test_orderbook_serializes_rows(self):
        app.state.order_book = OrderBookRepository(
            'dbname=test',
            connect=_fake_connect(
                [
                    (1, 7, 'BUY', Decimal('101.5'), Decimal('2'), 'OPEN', '2024-01-02 03:04:05'),
                    (2, 8, 'SELL', 99, 1.25, 'FILLED', '2024-01-02 03:05:00'),
                ]
            ),
        )

        res = self.client.get('/orderbook')

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.headers['access-control-allow-origin'], '*')
        self.assertEqual(
            res.json(),
            [
                {'id': 1, 'user_id': 7, 'side': 'BUY', 'price': 101.5, 'amount': 2.0,
                 'status': 'OPEN', 'created_at': '2024-01-02 03:04:05'},
                {'id': 2, 'user_id': 8, 'side': 'SELL', 'price': 99.0, 'amount': 1.25,
                 'status': 'FILLED', 'created_at': '2024-01-02 03:05:00'},
            ],
        )

    def test_database_error_returns_500_plain_text(self):
        app.state.order_book = OrderBookRepository(
            'dbname=test',
            connect=_fake_connect(error=psycopg.OperationalError('connection refused')),
        )

        res = self.client.get('/orderbook')

        self.assertEqual(res.status_code, 500)
        self.assertEqual(res.headers['content-type'], 'text/plain')
        self.assertEqual(res.text, 'Database error: connection refused')
        self.assertEqual(res.headers['access-control-allow-origin'], '*')

    def test_null_status_returns_500_instead_of_none_string(self):
        app.state.order_book = OrderBookRepository(
            'dbname=test',
            connect=_fake_connect([(1, 2, 'BUY', 1, 1, None, '2024-01-02 03:04:05+00')]),
        )

        res = self.client.get('/orderbook')

        self.assertEqual(res.status_code, 500)
        self.assertIn('null value in column status', res.text)
        self.assertNotIn('"None"', res.text)


if __name__ == '__main__':
    unittest.main()
