"""LangGraph workflow assembly for the clone -> develop -> test -> commit -> push run."""

from langgraph.graph import END, StateGraph

from agent_task_server.graph.context import WorkflowDeps
from agent_task_server.graph.nodes import changes, checkout, clone, commit, develop, finalize, push, testing
from agent_task_server.graph.state import WorkflowState


def build_graph(deps: WorkflowDeps):
    async def _prepare_repository(state: WorkflowState) -> WorkflowState:
        return await clone.run(state, deps)

    async def _checkout_branch(state: WorkflowState) -> WorkflowState:
        return await checkout.run(state, deps)

    async def _run_agent(state: WorkflowState) -> WorkflowState:
        return await develop.run(state, deps)

    async def _detect_changes(state: WorkflowState) -> WorkflowState:
        return await changes.run(state, deps)

    async def _run_tests(state: WorkflowState) -> WorkflowState:
        return await testing.run(state, deps)

    async def _commit_changes(state: WorkflowState) -> WorkflowState:
        return await commit.run(state, deps)

    async def _push_branch(state: WorkflowState) -> WorkflowState:
        return await push.run(state, deps)

    async def _finalize(state: WorkflowState) -> WorkflowState:
        return await finalize.run(state, deps)

    def _after_change_check(state: WorkflowState) -> str:
        # A clean tree finishes right away: no tests, no commit, no push.
        if not state.get("has_changes"):
            return "done"
        if deps.task(state).config.test_command:
            return "test"
        return "commit"

    graph = StateGraph(WorkflowState)

    graph.add_node("prepare_repository", _prepare_repository)
    graph.add_node("checkout_branch", _checkout_branch)
    graph.add_node("run_agent", _run_agent)
    graph.add_node("detect_changes", _detect_changes)
    graph.add_node("run_tests", _run_tests)
    graph.add_node("commit_changes", _commit_changes)
    graph.add_node("push_branch", _push_branch)
    graph.add_node("finalize", _finalize)

    graph.set_entry_point("prepare_repository")
    graph.add_edge("prepare_repository", "checkout_branch")
    graph.add_edge("checkout_branch", "run_agent")
    graph.add_edge("run_agent", "detect_changes")
    graph.add_conditional_edges(
        "detect_changes",
        _after_change_check,
        {"done": "finalize", "test": "run_tests", "commit": "commit_changes"},
    )
    graph.add_edge("run_tests", "commit_changes")
    graph.add_edge("commit_changes", "push_branch")
    graph.add_edge("push_branch", "finalize")
    graph.add_edge("finalize", END)

    return graph.compile()
