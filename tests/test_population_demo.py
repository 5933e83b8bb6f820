"""
Tests for scripts/population_demo.py - ageing/mortality client model.
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "scripts"))

from population_demo import FreshPopulation, build_simulation, settings_from_args

from microsim import Perturber, Simulation, normal
from microsim.constants import (
    ALIVE, ALIVE_STATE, CURRENT_DATE_STATE, DEAD, DEATH_AGE_STATE, DOB_STATE, MORTALITY_RISK_PARM,
)


class TestPopulationDemo:
    """Scenario tests for the demo model."""

    def test_single_run(self):
        sim = Simulation(seed=42)
        outcome = build_simulation(sim, 200, mortality_risk=0.1)
        sim.simulate(10)

        assert sim.states.value(CURRENT_DATE_STATE) == 2010.0
        assert len(sim.agents) + len(sim.dead_agents) == 200
        assert 0 < len(sim.dead_agents) < 200
        assert all(a.states.value(ALIVE_STATE) == ALIVE for a in sim.agents)
        for agent in sim.dead_agents:
            assert agent.states.value(ALIVE_STATE) == DEAD
            assert agent.states.value(DEATH_AGE_STATE) > 0.0
            assert agent.states.value(DOB_STATE) < 2000.0

        assert len(outcome.outcomes) == 1
        assert outcome.outcomes[0]["alive"] == len(sim.agents)

    def test_certain_death(self):
        sim = Simulation(seed=1)
        build_simulation(sim, 20, mortality_risk=1.0)
        sim.simulate(3)
        assert sim.agents == []
        assert len(sim.dead_agents) == 20

    def test_montecarlo_restores_mortality(self):
        sim = Simulation(seed=7)
        outcome = build_simulation(sim, 50, mortality_risk=0.05)
        draws = sim.montecarlo(5, False, [Perturber(MORTALITY_RISK_PARM, normal(0.0, 0.01))],
                               FreshPopulation(50, 4))

        assert draws == 4
        assert len(outcome.outcomes) == 4
        risks = [o["mortality_risk"] for o in outcome.outcomes]
        assert len(set(risks)) == 4
        assert sim.parameters[MORTALITY_RISK_PARM].tolist() == [0.05]
        for row in outcome.outcomes:
            assert row["alive"] + row["dead"] == 50

    def test_deterministic(self):
        def run():
            sim = Simulation(seed=99)
            outcome = build_simulation(sim, 100, mortality_risk=0.2)
            sim.simulate(5)
            return outcome.outcomes

        assert run() == run()


class TestDemoSettings:
    """Tests for settings_from_args."""

    @staticmethod
    def args(**overrides):
        values = {"config": None, "seed": None, "log_level": None}
        values.update(overrides)
        return argparse.Namespace(**values)

    def test_log_level_from_config(self, tmp_path):
        path = tmp_path / "simulation.yaml"
        path.write_text("seed: 4\nlog_level: DEBUG\n")
        config = settings_from_args(self.args(config=str(path)))
        assert config.log_level == "DEBUG"
        assert config.seed == 4

    def test_command_line_overrides_config(self, tmp_path):
        path = tmp_path / "simulation.yaml"
        path.write_text("seed: 4\nlog_level: DEBUG\n")
        config = settings_from_args(self.args(config=str(path), seed=8, log_level="warning"))
        assert config.log_level == "WARNING"
        assert config.seed == 8

    def test_defaults_without_config(self):
        config = settings_from_args(self.args())
        assert config.log_level == "INFO"
        assert config.seed == 13
