"""sparqlclient: SPARQL endpoint client with result shaping.

Main modules:
- service: Service class holding endpoint-wide defaults, creates queries
- query: Query class building query text and executing it
- transformations: functions reshaping SPARQL JSON results
- scheduler: FIFO limit on simultaneous requests per service
- namespaces: standard namespace prefix table
"""

from . import transformations, utils
from .errors import (
    InvalidArgumentError,
    InvalidShapeError,
    MissingEndpointError,
    SparqlClientError,
    TransportError,
)
from .namespaces import NAMESPACE_PREFIXES
from .query import Query
from .scheduler import RequestScheduler
from .service import Service
from .statistics import Statistics, StatisticsSnapshot, statistics
from .transport import RequestsTransport, TransportRequest, TransportResponse

# Import version information
from .version import VERSION

__all__ = [
    "VERSION",
    "NAMESPACE_PREFIXES",
    "InvalidArgumentError",
    "InvalidShapeError",
    "MissingEndpointError",
    "Query",
    "RequestScheduler",
    "RequestsTransport",
    "Service",
    "SparqlClientError",
    "Statistics",
    "StatisticsSnapshot",
    "TransportError",
    "TransportRequest",
    "TransportResponse",
    "statistics",
    "transformations",
    "utils",
]
