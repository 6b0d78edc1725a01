"""Reconciliation result models for observability."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List

from .task import TaskDefinition, TaskInstance


@dataclass
class SkippedCandidate:
    """Records why a candidate did not produce an instance."""

    path: str
    reason: str


@dataclass
class ReconcileResult:
    """Complete outcome of one reconciliation pass for a date."""

    date: date
    tasks: List[TaskDefinition]
    instances: List[TaskInstance]
    skipped: List[SkippedCandidate] = field(default_factory=list)
    pruned_deletions: int = 0
    migrated: List[TaskInstance] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for JSON export."""
        return {
            'date': self.date.isoformat(),
            'tasks': [task.to_dict() for task in self.tasks],
            'taskInstances': [inst.to_dict() for inst in self.instances],
            'skipped': [{'path': s.path, 'reason': s.reason} for s in self.skipped],
            'prunedDeletions': self.pruned_deletions,
            'migrated': [inst.instance_id for inst in self.migrated],
        }

    def to_human_readable(self) -> str:
        """Generate human-readable day list."""
        lines = [
            f"=== {self.date.isoformat()} ===",
            f"Tasks: {len(self.tasks)}  Instances: {len(self.instances)}",
        ]

        current_slot = None
        for inst in self.instances:
            if inst.slot_key != current_slot:
                current_slot = inst.slot_key
                lines.append("")
                lines.append(f"[{current_slot}]")
            marker = {'done': 'x', 'running': '>', 'idle': ' '}.get(inst.state, '?')
            line = f"  [{marker}] {inst.display_title}"
            if inst.start_time:
                line += f"  {inst.start_time.strftime('%H:%M')}"
                if inst.stop_time:
                    line += f"-{inst.stop_time.strftime('%H:%M')}"
            elif inst.task.scheduled_time:
                line += f"  @{inst.task.scheduled_time}"
            if inst.task.is_virtual:
                line += "  (virtual)"
            lines.append(line)

        if self.skipped:
            lines.extend(["", "Skipped:"])
            for s in self.skipped:
                lines.append(f"  {s.path}: {s.reason}")

        lines.append("=" * 50)

        return "\n".join(lines)
