"""Client module - read-only Elasticsearch access."""

from __future__ import annotations

from es_monitor.client.elasticsearch import (
    ElasticsearchClient,
    ElasticsearchConnectionError,
    ElasticsearchError,
    ElasticsearchHTTPError,
    ElasticsearchResponseError,
    EndpointNotAllowedError,
)

__all__ = [
    "ElasticsearchClient",
    "ElasticsearchConnectionError",
    "ElasticsearchError",
    "ElasticsearchHTTPError",
    "ElasticsearchResponseError",
    "EndpointNotAllowedError",
]
