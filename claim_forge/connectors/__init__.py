"""Network connectors used by the snapshot build."""

from .http_client import HttpClient, HttpRequestError

__all__ = ["HttpClient", "HttpRequestError"]
