"""Unit tests for score aggregation."""

from types import SimpleNamespace

import pytest

from portal.challenges.scoring import (
    average_score,
    participant_aggregate,
    submission_average,
    weighted_overall,
)
from tests.factories import SubmissionFactory


class TestAverageScore:
    def test_mean_of_scores(self):
        assert average_score([80, 90, 70]) == pytest.approx(80.0)

    def test_empty_is_not_scored(self):
        assert average_score([]) is None

    def test_single_score(self):
        assert average_score([42]) == 42.0

    def test_accepts_generator(self):
        assert average_score(s for s in (50, 100)) == 75.0


class TestSubmissionAverage:
    def test_uses_loaded_reviews(self):
        submission = SubmissionFactory.create(scores=[60, 80])
        assert submission_average(submission) == 70.0

    def test_unreviewed_submission(self):
        submission = SubmissionFactory.create(scores=[])
        assert submission_average(submission) is None


class TestWeightedOverall:
    def test_weights_need_not_sum_to_100(self):
        criteria = [{"name": "impact", "weight": 3}, {"name": "cost", "weight": 1}]
        assert weighted_overall(criteria, {"impact": 80, "cost": 40}) == 70.0

    def test_result_rounded_to_one_decimal(self):
        criteria = [{"name": "a", "weight": 1}, {"name": "b", "weight": 2}]
        # (70 + 2 * 85) / 3 = 80.0; (71 + 2 * 85) / 3 = 80.333...
        assert weighted_overall(criteria, {"a": 71, "b": 85}) == 80.3

    def test_missing_criterion_counts_as_zero(self):
        criteria = [{"name": "impact", "weight": 1}, {"name": "cost", "weight": 1}]
        assert weighted_overall(criteria, {"impact": 90}) == 45.0

    def test_zero_total_weight(self):
        criteria = [{"name": "impact", "weight": 0}]
        assert weighted_overall(criteria, {"impact": 90}) == 0.0

    def test_no_criteria_uses_equal_weights(self):
        assert weighted_overall([], {"impact": 90, "cost": 60}) == 75.0

    def test_attribute_criteria(self):
        criteria = [SimpleNamespace(name="impact", weight=40), SimpleNamespace(name="cost", weight=60)]
        assert weighted_overall(criteria, {"impact": 100, "cost": 50}) == 70.0


class TestParticipantAggregate:
    def test_mean_and_best(self):
        assert participant_aggregate([60.0, 90.0]) == (75.0, 90.0)

    def test_unreviewed_submissions_ignored(self):
        assert participant_aggregate([None, 80.0]) == (80.0, 80.0)

    def test_nothing_reviewed(self):
        assert participant_aggregate([None, None]) == (0.0, 0.0)
