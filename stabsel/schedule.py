"""Tick-keyed state machines: fitness phase and output schedule.

Both machines are transition tables of (start_tick, state) sorted by
start tick; the state at tick t is the one whose start is the largest
start ≤ t. Nothing else in the run decides phase or output density.

Logging interval, default regimes with selection onset at T:

    [1,         T − 10000)   every 1000 ticks
    [T − 10000, T − 1000)    every 100
    [T − 1000,  T)           every 10
    [T,         T + 1000)    every tick
    [T + 1000,  end]         every 100

A tick is logged when tick % interval == 0. Regime starts that fall
before tick 1 (scaled-down runs) are clamped to 1; a later regime
clamped onto the same start replaces an earlier one.

Snapshot ticks are an explicit enumerated set T + offset, restricted to
[1, end_tick].
"""

from __future__ import annotations

from bisect import bisect_right
from typing import Iterable, List, Sequence, Tuple

from stabsel.types import FIRST_TICK, Phase


def _compile_table(entries: Iterable[Tuple[int, object]]) -> Tuple[List[int], List[object]]:
    """Clamp starts to FIRST_TICK and keep the last state for each start."""
    starts: List[int] = []
    states: List[object] = []
    for start, state in entries:
        start = max(FIRST_TICK, int(start))
        if starts and start < starts[-1]:
            raise ValueError(
                f"Transition table starts must be non-decreasing, got {start} after {starts[-1]}"
            )
        if starts and start == starts[-1]:
            states[-1] = state
        else:
            starts.append(start)
            states.append(state)
    return starts, states


class PhaseController:
    """Fitness phase as a function of tick."""

    def __init__(self, selection_tick: int):
        self.selection_tick = selection_tick
        self._starts, self._phases = _compile_table([
            (FIRST_TICK, Phase.BURN_IN),
            (selection_tick, Phase.SELECTION_ONSET),
            (selection_tick + 1, Phase.SELECTION),
        ])

    @property
    def transitions(self) -> List[Tuple[int, Phase]]:
        return list(zip(self._starts, self._phases))

    def phase_at(self, tick: int) -> Phase:
        if tick < FIRST_TICK:
            raise ValueError(f"Ticks start at {FIRST_TICK}, got {tick}")
        return self._phases[bisect_right(self._starts, tick) - 1]


class LoggingSchedule:
    """Five-regime population-summary logging interval."""

    def __init__(
        self,
        selection_tick: int,
        initial_interval: int = 1000,
        regimes: Sequence[Sequence[int]] = ((-10_000, 100), (-1_000, 10), (0, 1), (1_000, 100)),
    ):
        self.selection_tick = selection_tick
        entries = [(FIRST_TICK, int(initial_interval))]
        entries.extend((selection_tick + int(off), int(iv)) for off, iv in regimes)
        self._starts, self._intervals = _compile_table(entries)

    @property
    def regimes(self) -> List[Tuple[int, int]]:
        """Resolved (start_tick, interval) pairs."""
        return list(zip(self._starts, self._intervals))

    def interval_at(self, tick: int) -> int:
        if tick < FIRST_TICK:
            raise ValueError(f"Ticks start at {FIRST_TICK}, got {tick}")
        return self._intervals[bisect_right(self._starts, tick) - 1]

    def should_log(self, tick: int) -> bool:
        return tick % self.interval_at(tick) == 0


def snapshot_ticks(
    selection_tick: int,
    end_tick: int,
    offsets: Iterable[int],
) -> Tuple[int, ...]:
    """Sorted unique snapshot ticks selection_tick + offset within [1, end_tick]."""
    ticks = {selection_tick + int(off) for off in offsets}
    return tuple(sorted(t for t in ticks if FIRST_TICK <= t <= end_tick))
