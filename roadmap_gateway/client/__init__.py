"""Client side of the roadmap pipeline."""

from roadmap_gateway.client.gateway_client import GatewayClient
from roadmap_gateway.client.orchestrator import RoadmapOrchestrator
from roadmap_gateway.client.stores import DatabaseRoadmapStore, HttpRoadmapStore, RoadmapStore

__all__ = [
    "GatewayClient",
    "RoadmapOrchestrator",
    "RoadmapStore",
    "DatabaseRoadmapStore",
    "HttpRoadmapStore",
]
