"""
microsim - Discrete-time agent-based microsimulation engine.

Client models plug callables into a Simulation, which steps a population of
agents through time and can re-run the whole model under randomly perturbed
parameters (Monte Carlo).

Modules:
    simulation - Simulation: population lifecycle, stepping loop, Monte Carlo
    store - Numeric stores of component vectors keyed by integer id
    names - Bidirectional id <-> name registry
    agent - Agent identity, state store and event list
    report - Report callbacks and their firing schedule
    perturb - Parameter perturbers, save/restore and stopping rules
    hazard - Event probabilities over differing time periods
    tables - Tabular (CSV) population of agents and parameters
    constants - Standard parameter and state identifiers
    config - YAML engine settings validated with jsonschema
    errors - Exception types
    logging_config - Logging setup for entry points
"""

from .agent import Agent
from .config import SimulationConfig, load_config
from .errors import ConfigurationError, MicrosimError, SimulationError, UnknownIdentifierError
from .hazard import is_event, prob_event
from .perturb import Perturber, max_draws, normal, preserve_parameters, time_budget, uniform, weibull
from .report import Report
from .simulation import Simulation
from .store import DenseNumericStore, NumericStore

__version__ = "1.0.0"
