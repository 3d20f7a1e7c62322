from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader

from monoplan.plan.planner import Plan

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
PLAN_TEMPLATE = "plan.txt.j2"


def plan_to_dict(plan: Plan) -> Dict[str, Any]:
    """
    Serializable view of a plan.

    Calls are listed in arena order; edges, parallel groups and annexes
    refer to calls by their `target:task` label.
    """
    return {
        "calls": [
            {
                "index": call.index,
                "target": call.ref.target,
                "task": call.ref.name,
                "action": call.task.spec.action.type,
                "command": getattr(call.task.spec.action, "command", None),
                "params": call.params().to_dict(),
                "qualifiers": sorted(str(q) for q in call.qualifiers if q != call.ref),
            }
            for call in plan.calls
        ],
        "order": [[str(a.ref), str(b.ref)] for a, b in plan.edges],
        "parallel": [sorted(str(q) for q in group) for group in plan.parallel_groups],
        "annexes": [[str(a.ref), str(b.ref)] for a, b in plan.annexes],
    }


def get_template_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_plan(plan: Plan) -> str:
    tpl = get_template_env().get_template(PLAN_TEMPLATE)
    return tpl.render(**plan_to_dict(plan))
