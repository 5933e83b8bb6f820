"""Agent: an identity with its own state store and event list."""

from typing import Callable, List

from .store import NumericStore

# AgentEvent callbacks receive (simulation, agent)
AgentEvent = Callable[..., None]


class Agent:
    """Passive data holder dispatched into by the Simulation.

    Agents are created through ``Simulation.append_agent()`` only, which hands
    out ids from a per-simulation counter.
    """

    __slots__ = ("_id", "states", "events")

    def __init__(self, agent_id: int, states: NumericStore, events: List[AgentEvent]):
        self._id = agent_id
        self.states = states
        self.events = events

    @property
    def id(self) -> int:
        return self._id

    def __repr__(self) -> str:
        return f"Agent(id={self._id})"
