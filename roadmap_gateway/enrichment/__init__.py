"""Live-search enrichment of milestone resources."""

from roadmap_gateway.enrichment.engine import ResourceEnricher
from roadmap_gateway.enrichment.search import SearchApiClient, SearchResult

__all__ = ["ResourceEnricher", "SearchApiClient", "SearchResult"]
