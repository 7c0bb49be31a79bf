"""Task planning: map a task onto its ordered step list."""
from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from agent_engine.core.models import Step, StepKind, Task

StepTemplate = Tuple[str, StepKind]

DEFAULT_PLAN: Tuple[StepTemplate, ...] = (
    ("Initialize Task", StepKind.SETUP),
    ("Execute Core Logic", StepKind.CODING),
    ("Verify Results", StepKind.TESTING),
)

TASK_PLANS: Dict[str, Tuple[StepTemplate, ...]] = {
    "create_component": (
        ("Analyze Requirements", StepKind.ANALYSIS),
        ("Design Component Structure", StepKind.PLANNING),
        ("Generate Component Code", StepKind.CODING),
        ("Create Tests", StepKind.TESTING),
        ("Integrate with Codebase", StepKind.INTEGRATION),
    ),
    "refactor_codebase": (
        ("Scan Codebase", StepKind.ANALYSIS),
        ("Identify Refactoring Opportunities", StepKind.ANALYSIS),
        ("Plan Refactoring Strategy", StepKind.PLANNING),
        ("Execute Refactoring", StepKind.CODING),
        ("Run Tests and Verify", StepKind.TESTING),
    ),
}


class TaskPlanner:
    """Pure planner; unknown task types get the generic three-step plan."""

    def __init__(self, extra_plans: Optional[Mapping[str, Sequence[StepTemplate]]] = None) -> None:
        self._plans: Dict[str, Tuple[StepTemplate, ...]] = dict(TASK_PLANS)
        for task_type, templates in (extra_plans or {}).items():
            if not templates:
                raise ValueError(f"Plan for task type '{task_type}' has no steps")
            self._plans[task_type] = tuple((name, StepKind(kind)) for name, kind in templates)

    def plan(self, task: Task) -> List[Step]:
        templates = self._plans.get(task.type, DEFAULT_PLAN)
        return [Step(index=i, name=name, kind=kind) for i, (name, kind) in enumerate(templates)]

    def known_types(self) -> List[str]:
        return sorted(self._plans)
