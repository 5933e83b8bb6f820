"""
Tests for microsim/report.py - Report callbacks and firing schedule.
"""

import pytest

from microsim import Report, Simulation
from microsim.errors import ConfigurationError, SimulationError
from microsim.report import as_report


def noop(sim):
    pass


class TestReport:
    """Tests for the Report value type."""

    def test_defaults(self):
        report = Report(noop)
        assert report.frequency == 1
        assert report.before is True
        assert report.after is True

    def test_callback_must_be_callable(self):
        with pytest.raises(ConfigurationError):
            Report("not callable")

    def test_negative_frequency_rejected(self):
        with pytest.raises(ConfigurationError):
            Report(noop, frequency=-1)

    def test_fires_when_frequency_divides_next_iteration(self):
        report = Report(noop, frequency=2)
        assert [i for i in range(6) if report.fires_at(i)] == [1, 3, 5]

    def test_frequency_zero_never_fires(self):
        report = Report(noop, frequency=0)
        assert not any(report.fires_at(i) for i in range(10))


class TestAsReport:
    def test_report_passthrough(self):
        report = Report(noop, 3)
        assert as_report(report) is report

    def test_tuple(self):
        report = as_report((noop, 5, False, True))
        assert report == Report(noop, 5, False, True)

    def test_bare_callable(self):
        assert as_report(noop) == Report(noop)


class TestReportSchedule:
    """Tests for when a Simulation runs its reports."""

    @pytest.fixture
    def sim(self):
        sim = Simulation(seed=1)
        sim.set_number_agents(2)
        return sim

    def test_before_interim_after(self, sim):
        calls = []
        sim.add_report(lambda s: calls.append(s.iteration), frequency=2)
        sim.simulate(5, interim_reports=True)
        # before (0), interims at iterations 1 and 3, after (5)
        assert calls == [0, 1, 3, 5]

    def test_interim_reports_disabled(self, sim):
        calls = []
        sim.add_report(lambda s: calls.append(s.iteration), frequency=1)
        sim.simulate(4, interim_reports=False)
        assert calls == [0, 4]

    def test_before_only(self, sim):
        calls = []
        sim.add_report(lambda s: calls.append("before"), frequency=0, before=True, after=False)
        sim.simulate(3, interim_reports=True)
        assert calls == ["before"]

    def test_reports_run_in_registration_order(self, sim):
        calls = []
        sim.set_reports([
            (lambda s: calls.append("a"), 0, False, True),
            (lambda s: calls.append("b"), 0, False, True),
        ])
        sim.simulate(1)
        assert calls == ["a", "b"]

    def test_set_reports_appends(self, sim):
        sim.set_reports([noop])
        sim.set_reports([Report(noop, 2)])
        assert len(sim.reports) == 2

    def test_report_sees_agents(self, sim):
        sizes = []
        sim.add_report(lambda s: sizes.append(len(s.agents)), frequency=0)
        sim.simulate(1)
        assert sizes == [2, 2]

    def test_report_error_wrapped(self, sim):
        def broken(sim):
            if sim.iteration == 2:
                raise KeyError("missing")

        sim.add_report(broken, frequency=1)
        with pytest.raises(SimulationError) as exc_info:
            sim.simulate(4, interim_reports=True)
        assert exc_info.value.role == "interim report"
        assert exc_info.value.iteration == 2
        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_final_report_error_role(self, sim):
        def broken(sim):
            raise ValueError("bad")

        sim.add_report(broken, frequency=0, before=False, after=True)
        with pytest.raises(SimulationError) as exc_info:
            sim.simulate(1)
        assert exc_info.value.role == "final report"
