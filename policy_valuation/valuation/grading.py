from ..core.utils import clamp
from .types import RiskGrade

# (upper bound exclusive, grade), evaluated in order
GRADE_LADDER = (
    (0.1, RiskGrade.AAA),
    (0.2, RiskGrade.AA),
    (0.3, RiskGrade.A),
    (0.4, RiskGrade.BBB),
    (0.5, RiskGrade.BB),
    (0.6, RiskGrade.B),
    (0.7, RiskGrade.CCC),
    (0.8, RiskGrade.CC),
    (0.9, RiskGrade.C),
)
WORST_GRADE = RiskGrade.D


def grade_for(composite_risk: float) -> RiskGrade:
    risk = clamp(composite_risk)
    for bound, grade in GRADE_LADDER:
        if risk < bound:
            return grade
    return WORST_GRADE
