# result_portal/services/grading.py
"""
Grade / CGPA engine.

Turns the per-subject marks of one semester submission into letter grades,
grade points and an aggregate (cgpa, status, failed subjects, total credits).

Grading scale (BTEB standard):
    80-100: A+ (4.00)    55-59: B- (2.75)
    75-79 : A  (3.75)    50-54: C+ (2.50)
    70-74 : A- (3.50)    45-49: C  (2.25)
    65-69 : B+ (3.25)    40-44: D  (2.00)
    60-64 : B  (3.00)    00-39: F  (0.00)

The engine is pure: no I/O, no shared state, and the caller's subject
entries are never modified. Range checks on marks and credits belong to the
request validators; out-of-range marks still resolve through the same ladder.
"""
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from result_portal.models.result_schemas import ResultStatus

DEFAULT_CREDITS = 1

_TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class GradeBand:
    min_marks: float
    grade: str
    point: float


# Ordered from the highest threshold down; the last band catches everything.
GRADE_SCALE: Tuple[GradeBand, ...] = (
    GradeBand(80, "A+", 4.00),
    GradeBand(75, "A", 3.75),
    GradeBand(70, "A-", 3.50),
    GradeBand(65, "B+", 3.25),
    GradeBand(60, "B", 3.00),
    GradeBand(55, "B-", 2.75),
    GradeBand(50, "C+", 2.50),
    GradeBand(45, "C", 2.25),
    GradeBand(40, "D", 2.00),
    GradeBand(float("-inf"), "F", 0.00),
)


def grade_of(marks: float, scale: Sequence[GradeBand] = GRADE_SCALE) -> Dict[str, Any]:
    """
    Map marks to {"grade", "point"}. First band with marks >= min_marks wins.
    """
    for band in scale:
        if marks >= band.min_marks:
            return {"grade": band.grade, "point": band.point}
    lowest = scale[-1]
    return {"grade": lowest.grade, "point": lowest.point}


def round2(value) -> float:
    """Round half away from zero to two decimals."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return float(value.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def effective_credits(subject: Mapping[str, Any], default_credits: float = DEFAULT_CREDITS):
    return subject.get("credits") or default_credits


def aggregate(
    subjects: Sequence[Mapping[str, Any]],
    default_credits: float = DEFAULT_CREDITS,
    scale: Sequence[GradeBand] = GRADE_SCALE,
) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    """
    Grade every subject and compute the semester aggregate.

    Returns (enriched_subjects, summary) where enriched_subjects are new
    dicts (input copy + grade + point) in input order and summary is
    {"cgpa", "status", "failed_subjects", "total_credits"}.

    Any subject with point 0 forces cgpa to 0.00 and status to Referred;
    total_credits is still the full sum. Subjects without credits count
    `default_credits`. Sums are kept in Decimal so 3.775 rounds to 3.78.
    """
    total_points = Decimal(0)
    total_credits = 0
    has_fail = False
    failed_subjects: List[str] = []
    enriched: List[Dict[str, Any]] = []

    for subject in subjects:
        graded = grade_of(subject["marks"], scale)
        credits = effective_credits(subject, default_credits)

        total_points += Decimal(str(graded["point"])) * Decimal(str(credits))
        total_credits += credits

        if graded["point"] == 0:
            has_fail = True
            failed_subjects.append(subject.get("subject_name"))

        enriched.append({**subject, "grade": graded["grade"], "point": graded["point"]})

    gpa = round2(total_points / Decimal(str(total_credits))) if total_credits > 0 else 0.0

    summary = {
        "cgpa": 0.0 if has_fail else gpa,
        "status": (ResultStatus.referred if has_fail else ResultStatus.passed).value,
        "failed_subjects": failed_subjects,
        "total_credits": total_credits,
    }
    return enriched, summary
