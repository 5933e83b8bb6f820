"""
Tests for Simulation.montecarlo and microsim/perturb.py.
"""

import logging

import numpy as np
import pytest

from microsim import Perturber, Simulation, max_draws, normal, preserve_parameters, time_budget, uniform, weibull
from microsim.constants import LAST_PARM
from microsim.errors import SimulationError, UnknownIdentifierError

RATE_PARM = LAST_PARM + 1
SCALE_PARM = LAST_PARM + 2


def constant(offset):
    """Perturbation that always draws ``offset``."""
    return lambda rng: offset


@pytest.fixture
def sim():
    sim = Simulation(seed=11)
    sim.set_parameters({RATE_PARM: [1.0, 2.0], SCALE_PARM: [10.0]})
    sim.set_number_agents(3)
    return sim


def record_parameter(sim, parameter):
    """Final report that records the parameter's values on every draw."""
    seen = []
    sim.add_report(lambda s: seen.append(s.parameters[parameter].tolist()),
                   frequency=0, before=False, after=True)
    return seen


class TestMonteCarlo:
    """Tests for the perturb / run / restore cycle."""

    def test_three_draws_restore_exactly(self, sim):
        seen = record_parameter(sim, RATE_PARM)
        draws = sim.montecarlo(2, False, [Perturber(RATE_PARM, normal(0.0, 1.0))], max_draws(3))

        assert draws == 3
        assert len(seen) == 3
        for values in seen:
            assert values[0] != 1.0
            assert values[1] != 2.0
            # one independent draw per component
            assert values[0] - 1.0 != values[1] - 2.0
        assert sim.parameters[RATE_PARM].tolist() == [1.0, 2.0]

    def test_offsets_are_from_baseline(self, sim):
        """Each draw perturbs the saved baseline, not the previous draw."""
        seen = record_parameter(sim, RATE_PARM)
        sim.montecarlo(1, False, [Perturber(RATE_PARM, constant(0.5))], max_draws(3))
        assert seen == [[1.5, 2.5]] * 3

    def test_unperturbed_parameters_untouched(self, sim):
        seen = record_parameter(sim, SCALE_PARM)
        sim.montecarlo(1, False, [Perturber(RATE_PARM, constant(1.0))], max_draws(2))
        assert seen == [[10.0], [10.0]]

    def test_zero_draws(self, sim):
        seen = record_parameter(sim, RATE_PARM)
        draws = sim.montecarlo(1, False, [Perturber(RATE_PARM, constant(1.0))], max_draws(0))
        assert draws == 0
        assert seen == []
        assert sim.parameters[RATE_PARM].tolist() == [1.0, 2.0]

    def test_carryon_sees_draw_numbers(self, sim):
        asked = []

        def carryon(s, draw):
            asked.append(draw)
            return draw < 4

        sim.montecarlo(1, False, [], carryon)
        assert asked == [0, 1, 2, 3, 4]

    def test_duplicate_perturber_last_wins(self, sim):
        seen = record_parameter(sim, SCALE_PARM)
        sim.montecarlo(1, False, [
            Perturber(SCALE_PARM, constant(1.0)),
            Perturber(SCALE_PARM, constant(5.0)),
        ], max_draws(2))
        assert seen == [[15.0], [15.0]]
        assert sim.parameters[SCALE_PARM].tolist() == [10.0]

    def test_parameter_lengthened_during_draw(self, sim):
        """A draw that grows a perturbed parameter does not break the next draw."""
        seen = record_parameter(sim, SCALE_PARM)
        sim.set_global_events([lambda s: s.parameters.append(SCALE_PARM, 0.0)])
        sim.montecarlo(1, False, [Perturber(SCALE_PARM, constant(1.0))], max_draws(3))
        assert seen == [[11.0, 0.0]] * 3
        assert sim.parameters[SCALE_PARM].tolist() == [10.0]

    def test_perturber_tuple_accepted(self, sim):
        seen = record_parameter(sim, SCALE_PARM)
        sim.montecarlo(1, False, [(SCALE_PARM, constant(2.0))], max_draws(1))
        assert seen == [[12.0]]

    def test_snapshot_cleared_each_call(self, sim):
        sim.montecarlo(1, False, [Perturber(RATE_PARM, constant(1.0))], max_draws(1))
        sim.montecarlo(1, False, [Perturber(SCALE_PARM, constant(1.0))], max_draws(1))
        assert list(sim.saved_parameters) == [SCALE_PARM]
        assert sim.parameters[RATE_PARM].tolist() == [1.0, 2.0]

    def test_unknown_parameter_fails_before_running(self, sim):
        seen = record_parameter(sim, RATE_PARM)
        with pytest.raises(UnknownIdentifierError):
            sim.montecarlo(1, False, [Perturber(999, constant(1.0))], max_draws(2))
        assert seen == []

    def test_perturber_error_wrapped(self, sim):
        def broken(rng):
            raise ValueError("bad draw")

        with pytest.raises(SimulationError) as exc_info:
            sim.montecarlo(1, False, [Perturber(RATE_PARM, broken)], max_draws(1))
        assert exc_info.value.role == "perturber"

    def test_carryon_error_wrapped(self, sim):
        def broken(s, draw):
            raise RuntimeError("stop")

        with pytest.raises(SimulationError) as exc_info:
            sim.montecarlo(1, False, [], broken)
        assert exc_info.value.role == "carryon predicate"

    def test_failed_draw_leaves_perturbed_values(self, sim):
        """Without preserve_parameters a failing draw keeps its perturbation."""
        sim.set_events([lambda s, a: 1 / 0])
        with pytest.raises(SimulationError):
            sim.montecarlo(1, False, [Perturber(SCALE_PARM, constant(3.0))], max_draws(1))
        assert sim.parameters[SCALE_PARM].tolist() == [13.0]

    def test_preserve_parameters_restores_on_error(self, sim):
        sim.set_events([lambda s, a: 1 / 0])
        with pytest.raises(SimulationError):
            with preserve_parameters(sim.parameters, [SCALE_PARM]):
                sim.montecarlo(1, False, [Perturber(SCALE_PARM, constant(3.0))], max_draws(1))
        assert sim.parameters[SCALE_PARM].tolist() == [10.0]

    def test_same_seed_reproduces(self):
        def run():
            sim = Simulation(seed=5)
            sim.set_parameter(RATE_PARM, [0.0])
            seen = record_parameter(sim, RATE_PARM)
            sim.montecarlo(1, False, [Perturber(RATE_PARM, normal(0.0, 1.0))], max_draws(5))
            return seen

        assert run() == run()

    def test_progress_logged(self, sim, caplog):
        sim.progress_every = 2
        with caplog.at_level(logging.INFO, logger="microsim.simulation"):
            sim.montecarlo(1, False, [], max_draws(4))
        assert "Completed 2 Monte Carlo draws" in caplog.text
        assert "Completed 4 Monte Carlo draws" in caplog.text


class TestDistributions:
    """Tests for the perturber factories."""

    def test_normal(self):
        rng = np.random.default_rng(0)
        draw = normal(5.0, 0.0)
        assert draw(rng) == 5.0

    def test_uniform_range(self):
        rng = np.random.default_rng(0)
        draw = uniform(2.0, 3.0)
        values = [draw(rng) for _ in range(100)]
        assert all(2.0 <= v < 3.0 for v in values)

    def test_weibull_scaled(self):
        rng = np.random.default_rng(0)
        draw = weibull(1.5, scale=2.0)
        values = [draw(rng) for _ in range(100)]
        assert all(v >= 0.0 for v in values)
        assert isinstance(values[0], float)


class TestStoppingRules:
    def test_max_draws(self):
        carryon = max_draws(2)
        assert [carryon(None, d) for d in range(4)] == [True, True, False, False]

    def test_time_budget(self):
        ticks = iter([0.0, 5.0, 12.0])
        carryon = time_budget(10.0, clock=lambda: next(ticks))
        assert carryon(None, 0)
        assert carryon(None, 1)
        assert not carryon(None, 2)

    def test_time_budget_in_montecarlo(self, sim):
        ticks = iter([0.0, 1.0, 2.0, 50.0])
        draws = sim.montecarlo(1, False, [], time_budget(10.0, clock=lambda: next(ticks)))
        assert draws == 3
