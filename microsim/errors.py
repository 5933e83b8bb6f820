"""Exception types raised by the microsimulation engine."""

from typing import Optional


class MicrosimError(Exception):
    """Base class for all engine errors."""
    pass


class ConfigurationError(MicrosimError, ValueError):
    """Raised for malformed tables, unknown names and invalid settings."""
    pass


class UnknownIdentifierError(MicrosimError, KeyError):
    """Raised when reading a parameter or state id that was never written."""

    def __init__(self, role: str, identifier):
        self.role = role
        self.identifier = identifier
        super().__init__(f"unknown {role} id: {identifier!r}")

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable
        return self.args[0]


class SimulationError(MicrosimError):
    """Exception raised when a user callback fails during a run.

    Carries where the failure happened so a single broken agent event can be
    traced back to its iteration and agent.
    """

    def __init__(
        self,
        role: str,
        message: str,
        iteration: Optional[int] = None,
        agent_id: Optional[int] = None,
        agent_index: Optional[int] = None,
        original_error: Optional[BaseException] = None,
    ):
        self.role = role
        self.message = message
        self.iteration = iteration
        self.agent_id = agent_id
        self.agent_index = agent_index
        self.original_error = original_error

        context = []
        if iteration is not None:
            context.append(f"iteration={iteration}")
        if agent_id is not None:
            context.append(f"agent_id={agent_id}")
        if agent_index is not None:
            context.append(f"agent_index={agent_index}")
        where = f" ({', '.join(context)})" if context else ""
        super().__init__(f"Simulation exception in {role}{where}: {message}")
