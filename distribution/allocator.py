# file: distribution/allocator.py
"""Splitting a pool of leads across callers.

Two entry points mirror the two ways an admin fills the distribution form:
`equal_split` produces the raw values for the "distribute equally" button,
`allocate` turns whatever raw values were entered into integer lead counts.
"""
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from typing import Dict, List, Mapping, Sequence, Union

log = logging.getLogger("allocator")

Number = Union[int, float]

class AllocationMode(str, Enum):
    COUNT = "count"
    PERCENTAGE = "percentage"

@dataclass(frozen=True)
class Allocation:
    agent_id: str
    count: int

@dataclass
class AllocationPreview:
    """Running total of the form against its target."""
    mode: AllocationMode
    target: int
    total: Number
    remaining: Number
    valid: bool
    values: Dict[str, Number] = field(default_factory=dict)
    counts: Dict[str, int] = field(default_factory=dict)
    # count-mode agents whose value is not a whole number of leads
    fractional: List[str] = field(default_factory=list)

def _target(pool_size: int, mode: AllocationMode) -> int:
    return pool_size if mode == AllocationMode.COUNT else 100

def _exact(v: Number) -> Fraction:
    # str() keeps the decimal the user typed (33.3, not its binary neighbour)
    return Fraction(str(v)) if isinstance(v, float) else Fraction(v)

def _plain(x: Fraction) -> Number:
    return int(x) if x.denominator == 1 else float(x)

def equal_split(agents: Sequence[str], pool_size: int,
                mode: Union[AllocationMode, str] = AllocationMode.COUNT) -> Dict[str, int]:
    """Even raw values; earlier agents take the remainder one unit each."""
    if not agents:
        return {}
    mode = AllocationMode(mode)
    target = _target(pool_size, mode)
    base, remainder = divmod(target, len(agents))
    return {a: base + (1 if i < remainder else 0) for i, a in enumerate(agents)}

def largest_remainder(pool_size: int, weights: Sequence[tuple]) -> List[Allocation]:
    """Hamilton apportionment of `pool_size` units over (agent_id, weight) pairs.

    Shares are proportional to the weights. Floors first, then one extra unit
    per agent in descending order of fractional remainder; equal remainders
    keep input order.
    """
    total = sum((_exact(w) for _, w in weights), Fraction(0))
    if not weights or total <= 0:
        return []
    rows = []
    allocated = 0
    for agent_id, w in weights:
        exact = _exact(w) * pool_size / total
        floored = math.floor(exact)
        allocated += floored
        rows.append([agent_id, floored, exact - floored])
    leftover = pool_size - allocated
    for row in sorted(rows, key=lambda r: r[2], reverse=True)[:leftover]:
        row[1] += 1
    return [Allocation(agent_id, count) for agent_id, count, _ in rows]

def allocate(pool_size: int, agents: Sequence[str],
             mode: Union[AllocationMode, str], raw_values: Mapping[str, Number]) -> List[Allocation]:
    """Per-agent lead counts for the submitted form.

    Agents whose raw value is zero (or missing) are left out of the result
    entirely; callers wanting every selected agent listed must add them back.

    Count mode passes raw values through unchanged, even when they do not add
    up to `pool_size`; check `preview(...).valid` before submitting. A count
    that is not a whole number raises ValueError rather than being truncated.

    Percentage mode always sums to exactly `pool_size` as long as one agent
    has a positive value. Each share is value / sum(values) * pool_size, i.e.
    normalised by the entered total rather than by a literal 100. The two
    agree whenever the percentages add up to 100; for an unbalanced form
    (30/30) the split follows the entered proportions (half each).
    """
    mode = AllocationMode(mode)
    participants = [(a, raw_values.get(a) or 0) for a in agents]
    participants = [(a, v) for a, v in participants if v > 0]

    if mode == AllocationMode.COUNT:
        result = []
        for a, v in participants:
            if _exact(v).denominator != 1:
                raise ValueError(f"count for {a} must be a whole number, got {v}")
            result.append(Allocation(a, int(v)))
    else:
        result = largest_remainder(pool_size, participants)

    log.debug("allocate mode=%s pool=%d -> %s", mode.value, pool_size,
              [(r.agent_id, r.count) for r in result])
    return result

def preview(pool_size: int, agents: Sequence[str],
            mode: Union[AllocationMode, str], raw_values: Mapping[str, Number]) -> AllocationPreview:
    """What the form shows while the admin types: total vs target, and counts."""
    mode = AllocationMode(mode)
    values = {a: raw_values.get(a) or 0 for a in agents}
    exact_total = sum((_exact(v) for v in values.values()), Fraction(0))
    target = _target(pool_size, mode)
    counts = {a: 0 for a in agents}
    fractional = []
    if mode == AllocationMode.COUNT:
        fractional = [a for a, v in values.items() if _exact(v).denominator != 1]
    if not fractional:
        for row in allocate(pool_size, agents, mode, values):
            counts[row.agent_id] = row.count
    return AllocationPreview(
        mode=mode,
        target=target,
        total=_plain(exact_total),
        remaining=_plain(target - exact_total),
        valid=bool(agents) and exact_total == target and not fractional,
        values=values,
        counts=counts,
        fractional=fractional,
    )
