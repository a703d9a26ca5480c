"""Background agent: storage connections, provider registry and periodic jobs.

Started by the FastAPI lifespan in ``aurum.main``:

    async with agent_lifespan(settings) as state:
        app.state.agent = state
"""

from aurum.agent.lifespan import AgentState, agent_lifespan

__all__ = ["AgentState", "agent_lifespan"]
