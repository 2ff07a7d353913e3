from langgraph.graph import StateGraph, START, END

from src.models import RenderState
from nodes.items import mark_items
from nodes.regions import mark_regions
from nodes.page import badge_page
from nodes.save import save


def create_graph(persist: bool = True):
    """
    Create the render workflow graph for one company page.

    Args:
        persist: If True, ends with the save node (appends to the output file).
                 If False, the rendered state is only returned by invoke().
    """
    workflow = StateGraph(RenderState)

    workflow.add_node("mark_items", mark_items)
    workflow.add_node("mark_regions", mark_regions)
    workflow.add_node("badge_page", badge_page)

    if persist:
        workflow.add_node("save", save)

    after_page = "save" if persist else END

    # A user who skipped onboarding gets the unpersonalized page: no markers at all
    workflow.add_conditional_edges(
        START,
        lambda state: "mark_items" if state["preferences"].selected_issues else after_page,
        {"mark_items": "mark_items", after_page: after_page},
    )
    workflow.add_edge("mark_items", "mark_regions")
    workflow.add_edge("mark_regions", "badge_page")
    workflow.add_edge("badge_page", after_page)

    if persist:
        workflow.add_edge("save", END)

    # No checkpointer: every render is a fresh recomputation
    return workflow.compile()
