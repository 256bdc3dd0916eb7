import unittest

from app.config.settings import Settings
from app.integrations.stooq import StooqClient
from app.integrations.trading212 import Trading212ScraperClient
from app.integrations.yahoo import YahooFinanceClient
from app.services.quote_providers import build_quote_fetcher


class QuoteProviderDispatchTest(unittest.TestCase):
    def test_default_provider_is_stooq(self):
        fetcher = build_quote_fetcher(Settings())

        self.assertIsInstance(fetcher, StooqClient)
        self.assertEqual(fetcher.name, "STOOQ")
        self.assertEqual(fetcher.timeout, 10.0)

    def test_yahoo_carries_insecure_tls_opt_in(self):
        fetcher = build_quote_fetcher(Settings(STOCKS_PROVIDER="YAHOO", STOCKS_ALLOW_INSECURE_TLS=True))

        self.assertIsInstance(fetcher, YahooFinanceClient)
        self.assertTrue(fetcher.allow_insecure_tls)

    def test_trading212_uses_scraper_url(self):
        fetcher = build_quote_fetcher(
            Settings(STOCKS_PROVIDER="TRADING212", SCRAPER_URL="http://scraper:9100", STOCKS_REFRESH_SECONDS=5)
        )

        self.assertIsInstance(fetcher, Trading212ScraperClient)
        self.assertEqual(fetcher.base_url, "http://scraper:9100")
        self.assertEqual(fetcher.timeout, 5.0)


if __name__ == "__main__":
    unittest.main()
