"""HTTP transport shared by CI and GitHub clients."""

from ci_inspect.http.cache import ResponseCache
from ci_inspect.http.fetcher import FetchResult, HttpFetcher

__all__ = ["FetchResult", "HttpFetcher", "ResponseCache"]
