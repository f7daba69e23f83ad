"""Client configuration loaded from environment variables."""

from __future__ import annotations

import os

from sparqlclient.transport import DEFAULT_USER_AGENT


def _optional_int(value: str | None) -> int | None:
    return int(value) if value else None


class Config:
    """Default configuration for services and the command line."""

    # Endpoint used when none is given explicitly
    SPARQL_ENDPOINT = os.getenv("SPARQL_ENDPOINT") or None

    # GET or POST
    SPARQL_METHOD = os.getenv("SPARQL_METHOD", "POST")

    # Transport timeout in seconds
    SPARQL_TIMEOUT = float(os.getenv("SPARQL_TIMEOUT", "60"))

    # Concurrency ceiling per service (unset = unbounded)
    SPARQL_MAX_SIMULTANEOUS = _optional_int(os.getenv("SPARQL_MAX_SIMULTANEOUS"))

    SPARQL_USER_AGENT = os.getenv("SPARQL_USER_AGENT", DEFAULT_USER_AGENT)


class TestConfig(Config):
    """Configuration overrides for testing."""

    SPARQL_ENDPOINT = "http://example.org/sparql"
    SPARQL_METHOD = "POST"
    SPARQL_TIMEOUT = 5.0
    SPARQL_MAX_SIMULTANEOUS = None
    SPARQL_USER_AGENT = "sparqlclient-tests"
