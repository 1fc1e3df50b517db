"""Tests for process aggregation and ranking."""

import pytest

from memviz.aggregate import aggregate_processes, rank_aggregates
from memviz.deltas import private_memory_mib
from memviz.models import ProcessAggregate
from tests.conftest import make_proc, make_snapshot, make_system, resolve_user


def aggregate(before_procs, after_procs, total_delta=1000.0):
    """Aggregate two process lists with fixed system totals."""
    before = make_snapshot(make_system(), *before_procs)
    after = make_snapshot(make_system(), *after_procs)
    return aggregate_processes(before, after, total_delta, resolve_user)


class TestAggregateProcesses:
    """Tests for aggregate_processes()."""

    def test_groups_by_command_name(self):
        """Processes sharing a name fold into one aggregate."""
        procs = [
            make_proc(1, "nginx", resident=100),
            make_proc(2, "nginx", resident=200),
            make_proc(3, "nginx", resident=300),
            make_proc(4, "bash", resident=50),
        ]
        result = aggregate(procs, procs)

        assert set(result) == {"nginx", "bash"}
        assert result["nginx"].count == 3
        assert result["bash"].count == 1
        expected = sum(private_memory_mib(p, 0) for p in (100, 200, 300))
        assert result["nginx"].memory_mib == pytest.approx(expected)

    def test_cpu_share_summed(self):
        """CPU percentages of each instance are added together."""
        before = [make_proc(1, "worker", cpu_time=0.0), make_proc(2, "worker", cpu_time=0.0)]
        after = [make_proc(1, "worker", cpu_time=250.0), make_proc(2, "worker", cpu_time=100.0)]
        result = aggregate(before, after)
        assert result["worker"].cpu_percent == pytest.approx(35.0)

    def test_new_process_has_zero_cpu(self):
        """A process only in the second enumeration is counted with 0% CPU."""
        result = aggregate([], [make_proc(7, "cron", cpu_time=500.0, resident=10)])
        assert result["cron"].count == 1
        assert result["cron"].cpu_percent == 0.0

    def test_exited_process_not_counted(self):
        """A process only in the first enumeration is not aggregated."""
        result = aggregate([make_proc(7, "cron", cpu_time=5.0)], [])
        assert result == {}

    def test_reused_pid_has_no_prior_value(self):
        """A pid that changed command name between captures starts fresh."""
        before = [make_proc(9, "old", cpu_time=0.0)]
        after = [make_proc(9, "new", cpu_time=900.0)]
        result = aggregate(before, after)
        assert result["new"].cpu_percent == 0.0

    def test_unknown_user_dropped(self):
        """Samples whose owner cannot be resolved are dropped entirely."""
        procs = [make_proc(1, "ghost", uid=4242, resident=100), make_proc(2, "ghost", resident=1)]
        result = aggregate(procs, procs)
        assert result["ghost"].count == 1
        assert result["ghost"].memory_mib == pytest.approx(private_memory_mib(1, 0))

    def test_first_sample_names_user(self):
        """The aggregate is labelled with the first resolved owner."""
        procs = [make_proc(1, "python", uid=1000), make_proc(2, "python", uid=0)]
        result = aggregate(procs, procs)
        assert result["python"].user == "alice"

    def test_zero_total_delta(self):
        """A zero-length interval yields 0% CPU everywhere."""
        before = [make_proc(1, "spin", cpu_time=0.0)]
        after = [make_proc(1, "spin", cpu_time=10.0)]
        assert aggregate(before, after, total_delta=0.0)["spin"].cpu_percent == 0.0

    def test_idempotent(self):
        """Aggregating identical snapshots twice gives identical results."""
        before = make_snapshot(make_system(), make_proc(1, "a", cpu_time=1.0, resident=10))
        after = make_snapshot(make_system(), make_proc(1, "a", cpu_time=2.0, resident=10))

        first = aggregate_processes(before, after, 100.0, resolve_user)
        second = aggregate_processes(before, after, 100.0, resolve_user)

        assert first == second
        assert first is not second
        assert first["a"].count == 1


class TestRankAggregates:
    """Tests for rank_aggregates()."""

    def test_descending_memory(self):
        """Larger private memory sorts first."""
        aggs = [
            ProcessAggregate(name="small", user="u", memory_mib=1.0, count=1),
            ProcessAggregate(name="big", user="u", memory_mib=100.0, count=1),
            ProcessAggregate(name="mid", user="u", memory_mib=10.0, count=1),
        ]
        ranked = rank_aggregates(aggs)
        assert [a.name for a in ranked] == ["big", "mid", "small"]

    def test_order_invariant(self):
        """Every adjacent pair is ordered by memory."""
        aggs = [
            ProcessAggregate(name=str(i), user="u", memory_mib=float(m), count=1)
            for i, m in enumerate([5, 3, 9, 3, 0, 12, 7])
        ]
        ranked = rank_aggregates(aggs)
        for first, second in zip(ranked, ranked[1:]):
            assert first.memory_mib >= second.memory_mib

    def test_empty(self):
        """No aggregates rank to an empty list."""
        assert rank_aggregates([]) == []
