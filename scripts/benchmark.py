#!/usr/bin/env python3
"""
Engine benchmark: agent-steps per second over repeated runs.

Each run re-initializes the population and steps it with a date event and
one cheap agent event (no deaths, so the population size stays fixed).

Usage:
    python scripts/benchmark.py --agents 10000 --steps 50 --runs 20
"""

import argparse
import sys
import time
from pathlib import Path
from typing import Dict

import numpy as np

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from microsim import Simulation
from microsim.constants import CURRENT_DATE_STATE, DOB_STATE, LAST_STATE, START_DATE_PARM, TIME_STEP_SIZE_PARM
from microsim.logging_config import configure_logging

AGE_STATE = LAST_STATE + 1


def _init_date(sim):
    sim.states[CURRENT_DATE_STATE] = [sim.parameters.value(START_DATE_PARM)]


def _advance_date(sim):
    sim.states[CURRENT_DATE_STATE][0] += sim.parameters.value(TIME_STEP_SIZE_PARM)


def _init_agent(agent, sim):
    agent.states[DOB_STATE] = [sim.parameters.value(START_DATE_PARM) - sim.rng.uniform(0, 80)]
    agent.states[AGE_STATE] = [0.0]


def _age(sim, agent):
    agent.states[AGE_STATE][0] = sim.states[CURRENT_DATE_STATE][0] - agent.states[DOB_STATE][0]


def benchmark(n_agents: int = 10_000, n_steps: int = 50, n_runs: int = 20,
              seed: int = 42) -> Dict[str, float]:
    """
    Benchmark engine performance.

    Args:
        n_agents: Number of agents
        n_steps: Iterations per simulation
        n_runs: Number of simulation runs

    Returns:
        Dict with timing statistics
    """
    print(f"\n{'='*60}")
    print("microsim Engine Benchmark")
    print(f"{'='*60}")
    print(f"Agents: {n_agents:,}")
    print(f"Steps per run: {n_steps}")
    print(f"Total runs: {n_runs}")
    print(f"Total agent-steps: {n_agents * n_steps * n_runs:,}")
    print(f"{'='*60}\n")

    init_start = time.perf_counter()
    sim = Simulation(seed=seed)
    sim.set_parameters({START_DATE_PARM: [2000.0], TIME_STEP_SIZE_PARM: [1.0]})
    sim.set_global_state_initializers([_init_date])
    sim.set_global_events([_advance_date])
    sim.set_agent_initializers([_init_agent])
    sim.set_events([_age])
    sim.set_number_agents(n_agents)
    init_time = time.perf_counter() - init_start
    print(f"Initialization time: {init_time:.3f}s")

    run_times = []
    for run in range(n_runs):
        run_start = time.perf_counter()
        sim.simulate(n_steps)
        run_times.append(time.perf_counter() - run_start)

        if (run + 1) % 5 == 0:
            print(f"  Completed {run + 1}/{n_runs} runs...")

    run_times = np.array(run_times)
    mean_time = run_times.mean()

    results = {
        "n_agents": n_agents,
        "n_steps": n_steps,
        "n_runs": n_runs,
        "init_time_sec": init_time,
        "total_time_sec": float(run_times.sum()),
        "mean_run_time_sec": float(mean_time),
        "std_run_time_sec": float(run_times.std()),
        "min_run_time_sec": float(run_times.min()),
        "max_run_time_sec": float(run_times.max()),
        "agent_steps_per_sec": (n_agents * n_steps) / mean_time,
    }

    print(f"\n{'='*60}")
    print("Results")
    print(f"{'='*60}")
    print(f"Mean run time: {results['mean_run_time_sec']*1000:.1f}ms (std {results['std_run_time_sec']*1000:.1f}ms)")
    print(f"Agent-steps/sec: {results['agent_steps_per_sec']:,.0f}")
    return results


def main():
    parser = argparse.ArgumentParser(description="microsim engine benchmark")
    parser.add_argument("--agents", type=int, default=10_000, help="Number of agents")
    parser.add_argument("--steps", type=int, default=50, help="Steps per run")
    parser.add_argument("--runs", type=int, default=20, help="Number of runs")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args()

    configure_logging("WARNING", log_file=None)
    benchmark(args.agents, args.steps, args.runs, args.seed)


if __name__ == "__main__":
    main()
