#!/usr/bin/env python3
"""
Population Ageing / Mortality Demo
==================================

A small client model for the microsim engine. Agents are born with a sex and
a date of birth, the global date advances by one time step per iteration,
and each step every living agent dies with the (per-year) mortality risk.

With --draws the model is re-run under Monte Carlo perturbation of the
mortality risk and the per-draw outcomes are summarised.

Usage:
    python scripts/population_demo.py --agents 1000 --steps 20 --seed 42
    python scripts/population_demo.py --draws 50 --output outputs/population.json
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List

import numpy as np

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from microsim import Perturber, Simulation, max_draws, normal
from microsim.config import SimulationConfig, load_config
from microsim.constants import (
    ALIVE, ALIVE_STATE, CURRENT_DATE_STATE, DEAD, DEATH_AGE_STATE, DOB_STATE,
    FEMALE, MALE, MORTALITY_RISK_PARM, PARAMETER_NAMES, PROB_MALE_PARM, SEX_STATE,
    START_DATE_PARM, STATE_NAMES, TIME_STEP_SIZE_PARM,
)
from microsim.logging_config import configure_logging

logger = logging.getLogger(__name__)

MAX_START_AGE = 80.0


# ============================================================================
# MODEL
# ============================================================================

def init_date(sim: Simulation) -> None:
    sim.states[CURRENT_DATE_STATE] = [sim.parameters.value(START_DATE_PARM)]


def advance_date(sim: Simulation) -> None:
    sim.states[CURRENT_DATE_STATE][0] += sim.parameters.value(TIME_STEP_SIZE_PARM)


def init_sex(agent, sim: Simulation) -> None:
    male = sim.rng.random() < sim.parameters.value(PROB_MALE_PARM)
    agent.states[SEX_STATE] = [MALE if male else FEMALE]


def init_dob(agent, sim: Simulation) -> None:
    age = sim.rng.uniform(0.0, MAX_START_AGE)
    agent.states[DOB_STATE] = [sim.parameters.value(START_DATE_PARM) - age]


def init_alive(agent, sim: Simulation) -> None:
    agent.states[ALIVE_STATE] = [ALIVE]


def mortality_event(sim: Simulation, agent) -> None:
    """Kill the agent with the mortality risk scaled to one time step."""
    if sim.is_parameter_event(MORTALITY_RISK_PARM):
        date = sim.states.value(CURRENT_DATE_STATE)
        agent.states[ALIVE_STATE] = [DEAD]
        agent.states[DEATH_AGE_STATE] = [date - agent.states.value(DOB_STATE)]
        sim.kill_agent()


class OutcomeReport:
    """Final report collecting one outcome row per simulate() call."""

    def __init__(self):
        self.outcomes: List[Dict[str, float]] = []

    def __call__(self, sim: Simulation) -> None:
        death_ages = [a.states.value(DEATH_AGE_STATE) for a in sim.dead_agents]
        self.outcomes.append({
            "date": sim.states.value(CURRENT_DATE_STATE),
            "mortality_risk": sim.parameters.value(MORTALITY_RISK_PARM),
            "alive": len(sim.agents),
            "dead": len(sim.dead_agents),
            "mean_death_age": float(np.mean(death_ages)) if death_ages else None,
        })


def build_simulation(sim: Simulation, num_agents: int, start_date: float = 2000.0,
                     time_step: float = 1.0, mortality_risk: float = 0.01,
                     prob_male: float = 0.5) -> OutcomeReport:
    """Register the model on ``sim`` and return its outcome report."""
    sim.set_parameter_names(PARAMETER_NAMES)
    sim.set_state_names(STATE_NAMES)
    sim.set_parameters({
        START_DATE_PARM: [start_date],
        TIME_STEP_SIZE_PARM: [time_step],
        MORTALITY_RISK_PARM: [mortality_risk],
        PROB_MALE_PARM: [prob_male],
    })
    sim.set_global_state_initializers([init_date])
    sim.set_global_events([advance_date])
    sim.set_agent_initializers([init_sex, init_dob, init_alive])
    sim.set_events([mortality_event])
    sim.set_number_agents(num_agents)

    outcome = OutcomeReport()
    sim.add_report(outcome, frequency=0, before=False, after=True)
    return outcome


class FreshPopulation:
    """Carry-on rule that also resets the population before each draw."""

    def __init__(self, num_agents: int, draws: int):
        self.num_agents = num_agents
        self.keep_going = max_draws(draws)

    def __call__(self, sim: Simulation, draw: int) -> bool:
        if not self.keep_going(sim, draw):
            return False
        if draw > 0:
            sim.agents.clear()
            sim.dead_agents.clear()
            sim.set_number_agents(self.num_agents)
        return True


# ============================================================================
# CLI
# ============================================================================

def settings_from_args(args) -> SimulationConfig:
    """Engine settings from --config, with --seed and --log-level taking precedence."""
    config = load_config(args.config) if args.config else SimulationConfig()
    if args.seed is not None:
        config.seed = args.seed
    if args.log_level:
        config.log_level = args.log_level.upper()
    return config


def run(args, config: SimulationConfig) -> Dict:
    sim = Simulation.from_config(config)

    outcome = build_simulation(sim, args.agents, mortality_risk=args.mortality)

    if args.draws:
        logger.info(f"Running {args.draws} Monte Carlo draws of {args.steps} steps")
        sim.montecarlo(
            args.steps,
            False,
            [Perturber(MORTALITY_RISK_PARM, normal(0.0, args.mortality_sd))],
            FreshPopulation(args.agents, args.draws),
        )
    else:
        logger.info(f"Running {args.steps} steps with {args.agents} agents")
        sim.simulate(args.steps)

    alive = np.array([o["alive"] for o in outcome.outcomes], dtype=float)
    return {
        "agents": args.agents,
        "steps": args.steps,
        "draws": len(outcome.outcomes),
        "mortality_risk": sim.parameters.value(MORTALITY_RISK_PARM),
        "mean_alive": float(alive.mean()) if len(alive) else None,
        "outcomes": outcome.outcomes,
    }


def main():
    parser = argparse.ArgumentParser(description="Population ageing/mortality microsimulation")
    parser.add_argument("--agents", type=int, default=1000, help="Number of agents")
    parser.add_argument("--steps", type=int, default=20, help="Number of time steps")
    parser.add_argument("--mortality", type=float, default=0.01, help="Annual mortality risk")
    parser.add_argument("--draws", type=int, default=0, help="Monte Carlo draws (0 = single run)")
    parser.add_argument("--mortality-sd", type=float, default=0.002,
                        help="SD of the mortality risk perturbation")
    parser.add_argument("--seed", type=int, help="Random seed (overrides --config)")
    parser.add_argument("--config", help="Engine settings YAML file")
    parser.add_argument("--output", help="Write results as JSON to this path")
    parser.add_argument("--log-level", help="Logging level (default: log_level from --config, else INFO)")

    args = parser.parse_args()
    config = settings_from_args(args)
    configure_logging(config.log_level)

    results = run(args, config)

    if args.output:
        out_dir = os.path.dirname(args.output) or "."
        os.makedirs(out_dir, exist_ok=True)
        with open(args.output, "w") as f:
            json.dump(results, f, indent=2, sort_keys=True)
        print(f"Results saved to {args.output}")

    print(f"\nDraws: {results['draws']}")
    print(f"Mean alive after {results['steps']} steps: {results['mean_alive']:.1f} / {results['agents']}")


if __name__ == "__main__":
    main()
