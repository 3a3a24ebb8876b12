# services/decision_report.py

from dataclasses import dataclass, field
from typing import Any, Dict

from services.permission_resolver import PermissionDecision

NO_RECORD_EXPLANATION = (
    "No permission record found for this combination. Access is denied by default."
)
BASE_ALLOWED = "Base permission is allowed."
BASE_DENIED = "Base permission is denied."
CONDITION_TRUE = " Condition evaluated to true, so access is allowed."
CONDITION_FALSE = " Condition evaluated to false, so access is denied."
CONDITION_IRRELEVANT = (
    " Since base permission is denied, condition evaluation does not change the result."
)


@dataclass
class DecisionReport:
    final_result: bool
    explanation: str
    breakdown: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'final_result': self.final_result,
            'explanation': self.explanation,
            'breakdown': self.breakdown,
        }


def build_report(decision: PermissionDecision) -> DecisionReport:
    """Explique comment la décision a été prise"""
    if not decision.record_found:
        return DecisionReport(
            final_result=False,
            explanation=NO_RECORD_EXPLANATION,
            breakdown={
                'record_found': False,
                'base_permission': None,
                'condition': 'not_applicable',
                'condition_relevant': False,
                'final': 'denied',
            },
        )

    explanation = BASE_ALLOWED if decision.allowed else BASE_DENIED
    condition = 'not_applicable'
    condition_relevant = False

    if decision.condition_applied:
        condition = 'true' if decision.condition_result else 'false'
        condition_relevant = decision.allowed
        if not decision.allowed:
            explanation += CONDITION_IRRELEVANT
        elif decision.condition_result:
            explanation += CONDITION_TRUE
        else:
            explanation += CONDITION_FALSE

    return DecisionReport(
        final_result=decision.final_result,
        explanation=explanation,
        breakdown={
            'record_found': True,
            'base_permission': 'allowed' if decision.allowed else 'denied',
            'condition': condition,
            'condition_relevant': condition_relevant,
            'final': 'granted' if decision.final_result else 'denied',
        },
    )
