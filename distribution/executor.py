# file: distribution/executor.py
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence
from distribution.allocator import Allocation

log = logging.getLogger("executor")

@dataclass
class AssignedSlice:
    agent_id: str
    lead_ids: List[str]

@dataclass
class AssignmentReport:
    completed: List[AssignedSlice] = field(default_factory=list)

    @property
    def assigned_count(self) -> int:
        return sum(len(s.lead_ids) for s in self.completed)

    @property
    def agent_count(self) -> int:
        return len(self.completed)

class AssignmentError(RuntimeError):
    """An assignment call failed part way; earlier slices stay applied."""

    def __init__(self, cause: BaseException, completed: List[AssignedSlice],
                 failed: AssignedSlice, remaining: List[AssignedSlice]):
        super().__init__(f"assignment to {failed.agent_id} failed after "
                         f"{len(completed)} slice(s): {cause}")
        self.cause = cause
        self.completed = completed
        self.failed = failed
        self.remaining = remaining

class BulkUpdateError(RuntimeError): ...

def plan_slices(lead_ids: Sequence[str], allocations: Sequence[Allocation]) -> List[AssignedSlice]:
    """Contiguous slices of the selection, in allocation order.

    Zero-count allocations produce no slice. The mapping depends only on the
    selection order and the allocation order.
    """
    ids = list(lead_ids)
    slices = []
    offset = 0
    for a in allocations:
        chunk = ids[offset:offset + a.count]
        if chunk:
            slices.append(AssignedSlice(a.agent_id, chunk))
        offset += a.count
    return slices

class AssignmentExecutor:
    """Issues assignment calls one slice at a time, stopping at the first failure"""

    def __init__(self, client):
        self.client = client

    async def _issue(self, slices: List[AssignedSlice]) -> AssignmentReport:
        report = AssignmentReport()
        for i, s in enumerate(slices):
            try:
                await self.client.assign(s.lead_ids, s.agent_id)
            except Exception as e:
                log.error("assign %d lead(s) to %s failed: %s", len(s.lead_ids), s.agent_id, e)
                raise AssignmentError(e, report.completed, s, slices[i + 1:]) from e
            report.completed.append(s)
            log.info("assigned %d lead(s) to %s", len(s.lead_ids), s.agent_id)
        return report

    async def run(self, lead_ids: Sequence[str], allocations: Sequence[Allocation]) -> AssignmentReport:
        return await self._issue(plan_slices(lead_ids, allocations))

    async def bulk_update(self, lead_ids: Sequence[str], updates: Dict[str, Any]) -> Dict[str, Any]:
        """Apply a bulk-edit form: distribution first, then the remaining fields."""
        ids = list(lead_ids)
        updates = dict(updates)
        distribute: Optional[Sequence[Allocation]] = updates.pop("distribute", None)

        if distribute:
            report = await self.run(ids, distribute)
            if not updates:
                return {"success": True, "count": report.assigned_count}

        res = await self.client.bulk_update(ids, updates)
        if not res.get("success"):
            raise BulkUpdateError(res.get("error") or "Update failed")
        return res

    async def smart_assign(self, lead_ids: Sequence[str], agents: Sequence[str],
                           agent_load: Optional[Mapping[str, int]] = None) -> AssignmentReport:
        """Round-robin over agents ordered by current load, least loaded first."""
        if not lead_ids or not agents:
            return AssignmentReport()
        load = agent_load or {}
        ordered = sorted(agents, key=lambda a: load.get(a, 0))
        slices = [AssignedSlice(ordered[i % len(ordered)], [lead_id])
                  for i, lead_id in enumerate(lead_ids)]
        return await self._issue(slices)
