"""
Ingestion layer: market-data provider clients and the news service.

Submodules:
  yahoo_client         — Yahoo Finance chart API (daily OHLCV + quote meta)
  alphavantage_client  — Alpha Vantage company overview (fundamentals)
  market_data          — combines both into a MarketSnapshot, with
                         sector-estimated fundamentals as the fallback
  news_service         — polled market-news feed with subscribers
  indices              — NIFTY 50 / Bank Nifty / Sensex quotes from the chart API

Credential placement (.env, gitignored):
  ALPHA_VANTAGE_API_KEY  — Alpha Vantage key (default: the public "demo" key)
"""
