from typing import Literal

from langgraph.graph import StateGraph, END
from loguru import logger

from storyweave.agents.state import IngestState


def supervisor_router(state: IngestState) -> Literal[
    "match", "merge_into_story", "create_story", "finalize", "error_handler", "end"
]:
    """
    Supervisor - Routes the ingestion graph based on current state

    Args:
        state: Current workflow state

    Returns:
        Next node name to execute
    """
    stage = state.get('stage', 'init')
    errors = state.get('errors', [])
    status = state.get('status', '')

    logger.debug(f"Supervisor routing: stage={stage}, errors={len(errors)}, status={status}")

    # Check for errors first
    if errors or status == 'error':
        return "error_handler"

    if stage == 'stored':
        return "match"
    elif stage == 'matched':
        return "merge_into_story"
    elif stage == 'unmatched':
        return "create_story"
    elif stage in ('merged', 'created'):
        return "finalize"
    elif stage in ('finalized', 'duplicate_skipped', 'error_handled'):
        return "end"
    else:
        logger.error(f"Unknown stage: {stage}")
        state['errors'].append(f"Unknown workflow stage: {stage}")
        return "error_handler"


def build_ingest_graph(manager):
    """
    Compile the ingestion graph around a StoryClusterManager's node methods

    store_raw -> match -> merge_into_story | create_story -> finalize
    """
    workflow = StateGraph(IngestState)

    workflow.add_node("store_raw", manager.store_raw_node)
    workflow.add_node("match", manager.match_node)
    workflow.add_node("merge_into_story", manager.merge_into_story_node)
    workflow.add_node("create_story", manager.create_story_node)
    workflow.add_node("finalize", manager.finalize_node)
    workflow.add_node("error_handler", manager.error_handler_node)

    workflow.set_entry_point("store_raw")

    workflow.add_conditional_edges(
        "store_raw",
        supervisor_router,
        {
            "match": "match",
            "error_handler": "error_handler",
            "end": END
        }
    )

    workflow.add_conditional_edges(
        "match",
        supervisor_router,
        {
            "merge_into_story": "merge_into_story",
            "create_story": "create_story",
            "error_handler": "error_handler",
        }
    )

    for node in ("merge_into_story", "create_story"):
        workflow.add_conditional_edges(
            node,
            supervisor_router,
            {
                "finalize": "finalize",
                "error_handler": "error_handler",
            }
        )

    workflow.add_conditional_edges(
        "finalize",
        supervisor_router,
        {
            "end": END,
            "error_handler": "error_handler"
        }
    )

    workflow.add_edge("error_handler", END)

    return workflow.compile()
