"""
Discrete-Time Agent-Based Microsimulation Engine
================================================

A Simulation owns the parameter and state stores, the agent population
(alive and dead), the global and agent event lists, the reports and its own
random generator. Client code supplies behaviour as plain callables:

    global state initializer   f(simulation)
    global event               f(simulation)
    agent initializer          f(agent, simulation)
    agent event                f(simulation, agent)
    report                     f(simulation)

Each iteration runs the global events, shuffles the living agents and runs
every agent's events, then (optionally) the interim reports that are due.

Usage:
    from microsim import Simulation, Perturber, max_draws, normal
    from microsim.constants import CURRENT_DATE_STATE, START_DATE_PARM

    sim = Simulation(seed=42)
    sim.set_parameters({START_DATE_PARM: [2000.0]})
    sim.set_global_state_initializers([
        lambda s: s.states.set(CURRENT_DATE_STATE, [s.parameters.value(START_DATE_PARM)]),
    ])
    sim.set_global_events([advance_date])
    sim.set_number_agents(10)
    sim.set_events([age_event])
    sim.simulate(5, interim_reports=False)

    sim.montecarlo(5, False, [Perturber(START_DATE_PARM, normal(0.0, 1.0))], max_draws(100))
"""

import logging
from pathlib import Path
from typing import Callable, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np

from . import hazard
from .agent import Agent
from .config import SimulationConfig
from .constants import TIME_STEP_SIZE_PARM
from .errors import ConfigurationError, MicrosimError, SimulationError
from .names import NameRegistry, NamePairs
from .perturb import Perturber, perturb_parameters, restore_parameters, save_parameters
from .report import Report, ReportLike, as_report
from .store import make_store
from .tables import AgentRow, Matrix, plan_agent_rows, plan_parameter_columns, read_table

logger = logging.getLogger(__name__)

GlobalEvent = Callable[["Simulation"], None]
GlobalStateInit = Callable[["Simulation"], None]
AgentEvent = Callable[["Simulation", Agent], None]
AgentInit = Callable[[Agent, "Simulation"], None]
CarryOn = Callable[["Simulation", int], bool]

ParameterValues = Union[Mapping[int, object], Iterable[Tuple[int, object]]]


class Simulation:
    """
    Agent-based microsimulation with Monte Carlo re-execution.

    Living agents are kept in ``agents`` (reordered every iteration) and
    agents removed with ``kill_agent`` move to ``dead_agents``. Every agent
    ever created is in exactly one of the two lists.

    Removing agents during a pass follows one fixed rule: a removed agent is
    never visited again in that pass. When the agent being visited removes
    itself, its remaining events are skipped and the agent swapped into its
    slot is visited next. Removing an agent that was already visited swaps
    the last agent into an earlier slot, and that agent is not visited for
    the rest of the pass.
    """

    def __init__(
        self,
        seed: int = 13,
        thread_num: int = 0,
        max_parameters: Optional[int] = None,
        max_states: Optional[int] = None,
        strict_tables: bool = True,
        progress_every: int = 1000,
    ):
        """
        Initialize an empty simulation.

        Args:
            seed: Base seed for the random generator
            thread_num: Added to the seed so simulations on different
                threads draw independent, reproducible streams
            max_parameters: Declare a dense parameter store with this many ids
            max_states: Declare dense state stores with this many ids
            strict_tables: Reject ragged rows and blank cells in agent tables
            progress_every: Log Monte Carlo progress every N draws (0 = never)
        """
        self.seed = seed + thread_num
        self.rng = np.random.default_rng(self.seed)
        self.strict_tables = strict_tables
        self.progress_every = progress_every

        self.parameter_names = NameRegistry("parameter")
        self.state_names = NameRegistry("state")
        self._max_parameters = max_parameters
        self._max_states = max_states
        self.parameters = make_store("parameter", max_parameters, self.parameter_names)
        self.states = make_store("state", max_states, self.state_names)
        # Baselines of perturbed parameters during montecarlo()
        self.saved_parameters = make_store("parameter", max_parameters, self.parameter_names)

        self.events: List[GlobalEvent] = []
        self.reports: List[Report] = []
        self.agents: List[Agent] = []
        self.dead_agents: List[Agent] = []

        self._global_state_initializers: List[GlobalStateInit] = []
        self._agent_initializers: List[AgentInit] = []
        self._agent_events: List[AgentEvent] = []
        self._agent_table: Optional[List[AgentRow]] = None

        self._agent_count = 0
        self._iteration = 0
        self._current_agent: Optional[Agent] = None
        self._current_agent_index: Optional[int] = None
        self._current_agent_killed = False

    @classmethod
    def from_config(cls, config: Union[SimulationConfig, dict, None] = None) -> "Simulation":
        """Build a simulation from a SimulationConfig (or a plain settings dict)."""
        if not isinstance(config, SimulationConfig):
            config = SimulationConfig.from_dict(config)
        return cls(
            seed=config.seed,
            thread_num=config.thread_num,
            max_parameters=config.max_parameters,
            max_states=config.max_states,
            strict_tables=config.strict_tables,
            progress_every=config.progress_every,
        )

    @property
    def iteration(self) -> int:
        return self._iteration

    @property
    def agent_count(self) -> int:
        """Number of agents ever created (alive + dead)."""
        return self._agent_count

    @property
    def current_agent_index(self) -> Optional[int]:
        """Position in ``agents`` of the agent whose events are running."""
        return self._current_agent_index

    # ----------------------------------------------------------------------
    # Callback failures
    # ----------------------------------------------------------------------

    def _callback_error(self, role: str, error: Exception, iteration: Optional[int] = None,
                        agent: Optional[Agent] = None,
                        agent_index: Optional[int] = None) -> SimulationError:
        err = SimulationError(
            role,
            str(error) or type(error).__name__,
            iteration=iteration,
            agent_id=agent.id if agent is not None else None,
            agent_index=agent_index,
            original_error=error,
        )
        logger.error(f"Exception processing {role}: {err}")
        return err

    # ----------------------------------------------------------------------
    # Population lifecycle
    # ----------------------------------------------------------------------

    def append_agent(self) -> Agent:
        """Create the next agent, add it to the living population and return it."""
        agent = Agent(
            self._agent_count,
            make_store("state", self._max_states, self.state_names),
            self._agent_events,
        )
        self._agent_count += 1
        self.agents.append(agent)
        return agent

    def set_number_agents(self, num_agents: int) -> None:
        if num_agents < 0:
            raise ConfigurationError(f"number of agents must be non-negative: {num_agents}")
        for _ in range(num_agents):
            self.append_agent()
        logger.debug(f"Added {num_agents} agents ({len(self.agents)} alive)")

    def kill_agent(self, index: Optional[int] = None) -> Agent:
        """
        Move an agent from ``agents`` to ``dead_agents``.

        The last living agent is swapped into the freed slot, so the removal
        is O(1) and reorders ``agents``. Without ``index`` the agent whose
        event is currently running is removed; this is how an agent event
        removes its own agent.

        Returns:
            The removed agent

        Raises:
            MicrosimError: If called without index outside an agent event,
                or twice for the same visited agent
            IndexError: If index is not a valid position in ``agents``
        """
        if index is None:
            if self._current_agent is None:
                raise MicrosimError("kill_agent() without index called outside an agent event")
            if self._current_agent_killed:
                raise MicrosimError(f"agent {self._current_agent.id} was already killed")
            index = self._current_agent_index

        agents = self.agents
        if not 0 <= index < len(agents):
            raise IndexError(f"agent index {index} out of range (alive={len(agents)})")

        victim = agents[index]
        last = agents.pop()
        if index < len(agents):
            agents[index] = last
        self.dead_agents.append(victim)

        if victim is self._current_agent:
            self._current_agent_killed = True
        elif last is self._current_agent:
            self._current_agent_index = index
        return victim

    # ----------------------------------------------------------------------
    # Parameters and names
    # ----------------------------------------------------------------------

    def set_parameter(self, parameter: int, values) -> None:
        self.parameters[parameter] = values

    def set_parameters(self, parameters: ParameterValues) -> None:
        items = parameters.items() if isinstance(parameters, Mapping) else parameters
        for parameter, values in items:
            self.set_parameter(parameter, values)

    def set_parameter_names(self, names: NamePairs) -> None:
        self.parameter_names.set_names(names)

    def set_state_names(self, names: NamePairs) -> None:
        self.state_names.set_names(names)

    # ----------------------------------------------------------------------
    # Tabular input
    # ----------------------------------------------------------------------

    @staticmethod
    def _check_capacity(ids: Iterable[int], capacity: Optional[int], role: str) -> None:
        if capacity is None:
            return
        for identifier in ids:
            if not 0 <= identifier < capacity:
                raise ConfigurationError(
                    f"{role} id {identifier} outside declared range [0, {capacity})"
                )

    def set_agent_table(self, matrix: Matrix) -> None:
        """Attach a table from which ``initialize_states`` creates agents.

        The table is fully validated here; nothing is created until the
        states are initialized.
        """
        plan = plan_agent_rows(matrix, self.state_names, strict=self.strict_tables)
        self._check_capacity(
            (state_id for row in plan for state_id, _ in row.states), self._max_states, "state"
        )
        self._agent_table = plan

    def set_agent_table_file(self, path: Union[str, Path], delimiter: str = ",") -> None:
        self.set_agent_table(read_table(path, delimiter))

    def clear_agent_table(self) -> None:
        self._agent_table = None

    def set_parameter_table(self, matrix: Matrix) -> None:
        """Append each column's non-blank cells to the named parameter."""
        columns = plan_parameter_columns(matrix, self.parameter_names, strict=self.strict_tables)
        self._check_capacity(columns, self._max_parameters, "parameter")
        for parameter, values in columns.items():
            current = self.parameters.get(parameter)
            if current is None:
                self.parameters[parameter] = values
            else:
                self.parameters[parameter] = np.concatenate([current, values])
        logger.debug(f"Parameter table loaded: {sorted(columns)}")

    def set_parameter_table_file(self, path: Union[str, Path], delimiter: str = ",") -> None:
        self.set_parameter_table(read_table(path, delimiter))

    def _populate_from_table(self, plan: List[AgentRow]) -> None:
        created = 0
        for row in plan:
            for _ in range(row.count):
                agent = self.append_agent()
                for state_id, value in row.states:
                    agent.states[state_id] = [value]
                created += 1
        logger.debug(f"Created {created} agents from table")

    # ----------------------------------------------------------------------
    # Initialization
    # ----------------------------------------------------------------------

    def set_global_state_initializers(self, init_funcs: Iterable[GlobalStateInit]) -> None:
        self._global_state_initializers = list(init_funcs)

    def set_global_states(self, init_funcs: Optional[Iterable[GlobalStateInit]] = None) -> None:
        """Run the global state initializers (replacing them first if given)."""
        if init_funcs is not None:
            self.set_global_state_initializers(init_funcs)
        for init in self._global_state_initializers:
            try:
                init(self)
            except Exception as e:
                raise self._callback_error("global state initializer", e) from e

    def set_agent_initializers(self, init_funcs: Iterable[AgentInit]) -> None:
        self._agent_initializers = list(init_funcs)

    def set_agent_states(self, init_funcs: Optional[Iterable[AgentInit]] = None) -> None:
        """Reset the iteration counter and run every agent initializer on every living agent."""
        if init_funcs is not None:
            self.set_agent_initializers(init_funcs)
        self._iteration = 0
        for index, agent in enumerate(self.agents):
            for init in self._agent_initializers:
                try:
                    init(agent, self)
                except Exception as e:
                    raise self._callback_error("agent initializer", e, agent=agent, agent_index=index) from e

    def set_global_events(self, events: Iterable[GlobalEvent]) -> None:
        self.events = list(events)

    def set_events(self, events: Iterable[AgentEvent]) -> None:
        """Give every agent, present and future, one shared event list."""
        self._agent_events = list(events)
        for agent in self.agents:
            agent.events = self._agent_events

    def set_reports(self, reports: Iterable[ReportLike]) -> None:
        """Append reports; each is a Report, a callable, or (callback, frequency, before, after)."""
        for report in reports:
            self.reports.append(as_report(report))

    def add_report(self, callback, frequency: int = 1, before: bool = True, after: bool = True) -> Report:
        report = Report(callback, frequency, before, after)
        self.reports.append(report)
        return report

    def initialize(
        self,
        parameters: Optional[ParameterValues] = None,
        global_state_initializers: Iterable[GlobalStateInit] = (),
        global_events: Iterable[GlobalEvent] = (),
        num_agents: int = 0,
        agent_initializers: Iterable[AgentInit] = (),
        agent_events: Iterable[AgentEvent] = (),
        reports: Iterable[ReportLike] = (),
    ) -> None:
        """Register a whole model in one call and run its initializers.

        Parameters are set first, then global states are initialized, then
        ``num_agents`` agents are created and initialized.
        """
        if parameters is not None:
            self.set_parameters(parameters)
        self.set_global_states(global_state_initializers)
        self.set_global_events(global_events)
        self.set_number_agents(num_agents)
        self.set_events(agent_events)
        self.set_agent_states(agent_initializers)
        self.set_reports(reports)

    def initialize_states(self) -> None:
        """Global states, then agents from an attached table, then agent states."""
        self.set_global_states()
        if self._agent_table is not None:
            self._populate_from_table(self._agent_table)
        self.set_agent_states()

    # ----------------------------------------------------------------------
    # Event probabilities
    # ----------------------------------------------------------------------

    @staticmethod
    def prob_event(p: float, t_ref: float, t_actual: float) -> float:
        """Probability over ``t_actual`` of an event with probability ``p`` over ``t_ref``."""
        return hazard.prob_event(p, t_ref, t_actual)

    def is_event(self, p: float, t_ref: float = 1.0, t_actual: Optional[float] = None,
                 draw: Optional[float] = None) -> bool:
        """Bernoulli draw for an event with probability ``p`` per ``t_ref``.

        ``t_actual`` defaults to the time step size parameter and ``draw`` to
        a uniform [0, 1) value from the simulation's generator.
        """
        if t_actual is None:
            t_actual = self.parameters.value(TIME_STEP_SIZE_PARM)
        if draw is None:
            draw = self.rng.random()
        return hazard.is_event(draw, p, t_ref, t_actual)

    def is_parameter_event(self, parameter: int, draw: Optional[float] = None) -> bool:
        """``is_event`` with ``p`` taken from component 0 of ``parameter`` (per unit time)."""
        return self.is_event(self.parameters.value(parameter), 1.0,
                             self.parameters.value(TIME_STEP_SIZE_PARM), draw)

    # ----------------------------------------------------------------------
    # Running
    # ----------------------------------------------------------------------

    def _run_report(self, report: Report, role: str, iteration: Optional[int] = None) -> None:
        try:
            report(self)
        except Exception as e:
            raise self._callback_error(role, e, iteration=iteration) from e

    def _step_agents(self, iteration: int) -> None:
        agents = self.agents
        self.rng.shuffle(agents)
        position = 0
        try:
            while position < len(agents):
                agent = agents[position]
                self._current_agent = agent
                self._current_agent_index = position
                self._current_agent_killed = False
                for event in agent.events:
                    try:
                        event(self, agent)
                    except Exception as e:
                        raise self._callback_error(
                            "agent event", e, iteration=iteration,
                            agent=agent, agent_index=self._current_agent_index,
                        ) from e
                    if self._current_agent_killed:
                        break
                # A killed agent's slot now holds an agent not yet visited
                if not self._current_agent_killed:
                    position += 1
        finally:
            self._current_agent = None
            self._current_agent_index = None
            self._current_agent_killed = False

    def simulate(self, num_steps: int, interim_reports: bool = False) -> None:
        """
        Initialize all states and run ``num_steps`` iterations.

        Args:
            num_steps: Number of iterations
            interim_reports: Run reports whose frequency divides (iteration + 1)

        Raises:
            SimulationError: If any initializer, event or report raises
        """
        num_steps = int(num_steps)
        self.initialize_states()
        logger.debug(f"Simulating {num_steps} steps with {len(self.agents)} agents")

        for report in self.reports:
            if report.before:
                self._run_report(report, "pre-simulation report")

        while self._iteration < num_steps:
            iteration = self._iteration
            for event in self.events:
                try:
                    event(self)
                except Exception as e:
                    raise self._callback_error("global event", e, iteration=iteration) from e

            self._step_agents(iteration)

            if interim_reports:
                for report in self.reports:
                    if report.fires_at(iteration):
                        self._run_report(report, "interim report", iteration)
            self._iteration += 1

        for report in self.reports:
            if report.after:
                self._run_report(report, "final report", self._iteration)

        logger.debug(
            f"Simulation finished: {len(self.agents)} alive, {len(self.dead_agents)} dead"
        )

    def montecarlo(self, num_steps: int, interim_reports: bool,
                   perturbers: Iterable[Perturber], carryon: CarryOn) -> int:
        """
        Re-run the simulation under randomly perturbed parameters.

        Before each draw every perturbed parameter is set to its baseline
        plus a fresh offset per component; ``carryon(simulation, draw)`` is
        asked before every draw whether to continue. After the loop the
        baselines are restored exactly. If a draw raises, the perturbed
        values are left in place (see ``perturb.preserve_parameters``).

        Returns:
            Number of draws executed
        """
        perturbers = [p if isinstance(p, Perturber) else Perturber(*p) for p in perturbers]
        snapshot = self.saved_parameters
        snapshot.clear()
        save_parameters(self.parameters, perturbers, snapshot)

        draw = 0
        while True:
            try:
                go_on = carryon(self, draw)
            except Exception as e:
                raise self._callback_error("carryon predicate", e) from e
            if not go_on:
                break

            try:
                perturb_parameters(self.parameters, perturbers, snapshot, self.rng)
            except Exception as e:
                raise self._callback_error("perturber", e) from e

            self.simulate(num_steps, interim_reports)
            draw += 1
            if self.progress_every and draw % self.progress_every == 0:
                logger.info(f"Completed {draw} Monte Carlo draws")

        restore_parameters(self.parameters, snapshot)
        logger.debug(f"Monte Carlo finished after {draw} draws; restored {len(snapshot)} parameters")
        return draw
