from storyweave.agents.cluster_manager import IngestResult, StoryClusterManager, merge_sources
from storyweave.agents.workflow import build_ingest_graph, supervisor_router

__all__ = [
    "IngestResult",
    "StoryClusterManager",
    "merge_sources",
    "build_ingest_graph",
    "supervisor_router",
]
