"""Tests for memviz data models."""

from memviz.models import CpuTimes, ProcessAggregate, ProcessCounters, TimePoint


def test_process_counters_creation():
    """Test ProcessCounters dataclass creation."""
    counters = ProcessCounters(
        pid=123,
        name="test_process",
        cpu_time=12.5,
        resident_pages=1000,
        shared_pages=400,
        uid=1000,
    )

    assert counters.pid == 123
    assert counters.name == "test_process"
    assert counters.cpu_time == 12.5
    assert counters.resident_pages == 1000
    assert counters.shared_pages == 400
    assert counters.uid == 1000


def test_process_counters_is_frozen():
    """Test that ProcessCounters is immutable (frozen)."""
    counters = ProcessCounters(
        pid=1, name="init", cpu_time=0.1, resident_pages=10, shared_pages=5, uid=0
    )

    try:
        counters.pid = 999
        raise AssertionError("Should have raised FrozenInstanceError")
    except AttributeError:
        pass  # Expected behavior for frozen dataclass


def test_snapshot_models_use_slots():
    """Test that snapshot records use __slots__ for memory efficiency."""
    assert not hasattr(CpuTimes(user=1.0, system=1.0, idle=1.0), "__dict__")
    assert not hasattr(TimePoint(timestamp=0.0, value=1.0), "__dict__")


def test_cpu_times_optional_states_default_to_zero():
    """Platforms without iowait/nice/steal report zero for them."""
    times = CpuTimes(user=1.0, system=2.0, idle=3.0)
    assert (times.iowait, times.nice, times.steal) == (0.0, 0.0, 0.0)


def test_process_aggregate_add():
    """add() folds one sample into the running totals."""
    agg = ProcessAggregate(name="nginx", user="www")
    agg.add(10.0, 2.5)
    agg.add(5.0, 1.5)

    assert agg.count == 2
    assert agg.cpu_percent == 15.0
    assert agg.memory_mib == 4.0
