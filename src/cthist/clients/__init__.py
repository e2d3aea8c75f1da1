"""Client abstractions."""

from .http import create_http_client, fetch_json, host_reachable

__all__ = ["create_http_client", "fetch_json", "host_reachable"]
