"""
Harvest pipeline services: dedup gate, orchestrator, indexing and scheduling.
"""

from .harvest import HarvestOrchestrator
from .indexing import IndexingError, IndexingPipeline
from .ingest import DedupGate
from .scheduler import HarvestScheduler

__all__ = ["DedupGate", "HarvestOrchestrator", "HarvestScheduler", "IndexingError", "IndexingPipeline"]
