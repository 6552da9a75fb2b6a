"""
Adapters package for the proxy service.

Contains the HTTP client wrapper for the upstream GraphQL indexer. The
adapter encapsulates:

- The upstream URL and request shapes
- Bounded-time calls with timeout vs. transport failure classification
- Error handling that maps to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .upstream_client import Outcome, UpstreamClient, parse_progress_counter

__all__ = [
    "Outcome",
    "UpstreamClient",
    "parse_progress_counter",
]
