"""
Inspection scoring.

Pure functions: the score is recomputed from the form and the product's
tolerances every time it is needed, never cached.

Formula:
    axis sub-score   = 5 if min <= measured <= max else 1
    dimension score  = (height + width + length sub-scores) / 3
    average          = (dimension score + color + crumb + taste) / 4
    status           = passed if average >= 3.4
"""

from typing import Any

import structlog

from models.inspection import (
    InspectionForm,
    InspectionStatus,
    DimensionScores,
    ScoreResult,
)
from models.product import DimensionRange, ReferenceDimensions

logger = structlog.get_logger(__name__)


# Fixed business rules
PASS_THRESHOLD = 3.4
IN_RANGE_SCORE = 5
OUT_OF_RANGE_SCORE = 1


def to_number(value: Any) -> float:
    """
    Coerce a form value to a number.

    Missing or non-numeric values become 0, which puts them out of
    range of any positive tolerance band.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number:  # NaN
        return 0.0
    return number


def score_axis(value: Any, tolerance: DimensionRange) -> int:
    """Binary sub-score for one measured dimension."""
    return IN_RANGE_SCORE if tolerance.contains(to_number(value)) else OUT_OF_RANGE_SCORE


def classify_average(average_score: float) -> InspectionStatus:
    """Pass/fail for an average score. The threshold is inclusive."""
    return InspectionStatus.PASSED if average_score >= PASS_THRESHOLD else InspectionStatus.NOT_PASSED


def score_inspection(form: InspectionForm, dimensions: ReferenceDimensions) -> ScoreResult:
    """
    Score an inspection against a product's tolerances.

    Args:
        form: Inspection form (measurements and ratings)
        dimensions: Reference product tolerance bands

    Returns:
        ScoreResult with status, average and per-axis breakdown
    """
    coerced = [
        name for name in ("height", "width", "length", "color_rating", "crumb_rating", "taste_rating")
        if to_number(getattr(form, name)) == 0.0
    ]
    if coerced:
        logger.warning("score_inputs_coerced_to_zero", fields=coerced)

    axes = DimensionScores(
        height=score_axis(form.height, dimensions.height),
        width=score_axis(form.width, dimensions.width),
        length=score_axis(form.length, dimensions.length),
    )
    dimension_score = axes.composite

    average_score = (
        dimension_score
        + to_number(form.color_rating)
        + to_number(form.crumb_rating)
        + to_number(form.taste_rating)
    ) / 4

    result = ScoreResult(
        status=classify_average(average_score),
        average_score=average_score,
        dimension_score=dimension_score,
        dimension_scores=axes,
    )

    logger.debug(
        "inspection_scored",
        status=result.status.value,
        average_score=round(average_score, 3),
        dimension_score=round(dimension_score, 3)
    )

    return result
