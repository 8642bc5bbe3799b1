from app.adapters.http.fetcher import RetryingFetcher

__all__ = ["RetryingFetcher"]
