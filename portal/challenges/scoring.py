"""Score aggregation for submissions and participants.

All functions are pure: they work on the data handed to them and never
touch the database.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any


def average_score(scores: Iterable[float]) -> float | None:
    """Arithmetic mean of review scores.

    Returns ``None`` for an empty input: an unreviewed submission is "not
    scored", which is different from scoring zero.
    """
    values = [float(score) for score in scores]
    if not values:
        return None
    return sum(values) / len(values)


def submission_average(submission: Any) -> float | None:
    """Average review score of a submission with its ``reviews`` loaded."""
    return average_score(review.score for review in submission.reviews)


def _criterion_pair(criterion: Any) -> tuple[str, float]:
    if isinstance(criterion, Mapping):
        return str(criterion["name"]), float(criterion.get("weight", 1))
    return str(criterion.name), float(criterion.weight)


def weighted_overall(
    criteria: Sequence[Any],
    criterion_scores: Mapping[str, float],
) -> float:
    """Combine per-criterion scores into one overall score.

    ``round(Σ(score × weight) / Σ(weight), 1)``. Weights need not sum to 100.
    A criterion the reviewer left unscored counts as 0, and a total weight of
    zero yields 0. When the challenge defines no weighted criteria every
    scored criterion gets weight 1.
    """
    if criteria:
        pairs = [_criterion_pair(criterion) for criterion in criteria]
    else:
        pairs = [(name, 1.0) for name in criterion_scores]

    total_weight = sum(weight for _, weight in pairs)
    if total_weight == 0:
        return 0.0

    weighted_sum = sum(float(criterion_scores.get(name, 0)) * weight for name, weight in pairs)
    return round(weighted_sum / total_weight, 1)


def participant_aggregate(submission_averages: Iterable[float | None]) -> tuple[float, float]:
    """Mean and best of a participant's per-submission averages.

    Unreviewed submissions (``None``) are skipped; a participant with no
    reviewed submission gets ``(0.0, 0.0)``.
    """
    reviewed = [value for value in submission_averages if value is not None]
    if not reviewed:
        return 0.0, 0.0
    return sum(reviewed) / len(reviewed), max(reviewed)
