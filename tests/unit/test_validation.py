"""Unit tests for input validation."""
from datetime import datetime, timezone

import pytest

from tracking.domain import validation
from tracking.domain.exceptions import ValidationError

START = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
END = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
HASH = "a" * 64


def valid_task_kwargs(**overrides):
    kwargs = dict(
        sealed_pack_code="SP-001",
        source_location="Treasury",
        destination_location="Centre 12",
        assigned_user_id="agent-1",
        scheduled_start=START,
        scheduled_end=END,
        pickup_latitude=25.6747,
        pickup_longitude=94.1086,
        geofence_radius_meters=100,
        exam_type="REGULAR",
    )
    kwargs.update(overrides)
    return kwargs


def valid_submission_kwargs(**overrides):
    kwargs = dict(
        task_id="t1",
        event_type="PICKUP",
        recorded_at=START,
        latitude=25.6747,
        longitude=94.1086,
        submitted_by="agent-1",
    )
    kwargs.update(overrides)
    return kwargs


class TestValidateNewTask:

    def test_valid_task_passes(self):
        validation.validate_new_task(**valid_task_kwargs())

    def test_task_without_reference_points_passes(self):
        validation.validate_new_task(**valid_task_kwargs(pickup_latitude=None, pickup_longitude=None))

    @pytest.mark.parametrize("code", ["SP", "  ", "x" * 101])
    def test_sealed_pack_code_length(self, code):
        with pytest.raises(ValidationError):
            validation.validate_new_task(**valid_task_kwargs(sealed_pack_code=code))

    @pytest.mark.parametrize("radius", [9, 1001])
    def test_radius_bounds(self, radius):
        with pytest.raises(ValidationError):
            validation.validate_new_task(**valid_task_kwargs(geofence_radius_meters=radius))

    @pytest.mark.parametrize("radius", [float("nan"), float("inf")])
    def test_non_finite_radius_is_rejected(self, radius):
        with pytest.raises(ValidationError) as excinfo:
            validation.validate_new_task(**valid_task_kwargs(geofence_radius_meters=radius))

        assert excinfo.value.errors == ["geofence_radius_meters must be a finite number"]

    def test_non_finite_reference_point_is_rejected(self):
        with pytest.raises(ValidationError):
            validation.validate_new_task(**valid_task_kwargs(pickup_latitude=float("nan")))

    @pytest.mark.parametrize(
        "field, length",
        [
            ("source_location", 256),
            ("destination_location", 256),
            ("assigned_user_id", 37),
            ("created_by", 37),
        ],
    )
    def test_string_longer_than_its_column_is_rejected(self, field, length):
        with pytest.raises(ValidationError):
            validation.validate_new_task(**valid_task_kwargs(**{field: "x" * length}))

    def test_strings_at_column_size_pass(self):
        validation.validate_new_task(
            **valid_task_kwargs(source_location="x" * 255, assigned_user_id="a" * 36, created_by="b" * 36)
        )

    def test_half_a_coordinate_pair_is_rejected(self):
        with pytest.raises(ValidationError) as excinfo:
            validation.validate_new_task(**valid_task_kwargs(pickup_longitude=None))

        assert "pickup_latitude and pickup_longitude must be given together" in excinfo.value.errors

    def test_end_must_follow_start(self):
        with pytest.raises(ValidationError) as excinfo:
            validation.validate_new_task(**valid_task_kwargs(scheduled_end=START))

        assert "scheduled_end must be after scheduled_start" in excinfo.value.errors

    def test_mixed_naive_and_aware_window(self):
        with pytest.raises(ValidationError):
            validation.validate_new_task(**valid_task_kwargs(scheduled_end=datetime(2024, 3, 1, 12, 0)))

    def test_unknown_exam_type(self):
        with pytest.raises(ValidationError) as excinfo:
            validation.validate_new_task(**valid_task_kwargs(exam_type="ORAL"))

        assert excinfo.value.errors == ["exam_type must be one of: REGULAR, COMPARTMENTAL"]

    def test_all_violations_are_reported_together(self):
        with pytest.raises(ValidationError) as excinfo:
            validation.validate_new_task(
                **valid_task_kwargs(sealed_pack_code="S", source_location="", destination_latitude=91)
            )

        assert len(excinfo.value.errors) == 3


class TestValidateSubmission:

    def test_valid_submission_passes(self):
        validation.validate_submission(**valid_submission_kwargs(evidence_hash=HASH))

    @pytest.mark.parametrize("latitude", [-90.5, 90.5])
    def test_latitude_range(self, latitude):
        with pytest.raises(ValidationError):
            validation.validate_submission(**valid_submission_kwargs(latitude=latitude))

    @pytest.mark.parametrize("longitude", [-180.1, 180.1])
    def test_longitude_range(self, longitude):
        with pytest.raises(ValidationError):
            validation.validate_submission(**valid_submission_kwargs(longitude=longitude))

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_coordinates_are_rejected(self, value):
        with pytest.raises(ValidationError):
            validation.validate_submission(**valid_submission_kwargs(latitude=value))
        with pytest.raises(ValidationError):
            validation.validate_submission(**valid_submission_kwargs(longitude=value))

    def test_range_edges_are_valid(self):
        validation.validate_submission(**valid_submission_kwargs(latitude=-90, longitude=180))

    def test_boolean_is_not_a_coordinate(self):
        with pytest.raises(ValidationError):
            validation.validate_submission(**valid_submission_kwargs(latitude=True))

    def test_unknown_event_type(self):
        with pytest.raises(ValidationError):
            validation.validate_submission(**valid_submission_kwargs(event_type="DROPOFF"))

    def test_missing_timestamp(self):
        with pytest.raises(ValidationError) as excinfo:
            validation.validate_submission(**valid_submission_kwargs(recorded_at=None))

        assert excinfo.value.errors == ["recorded_at is required"]

    def test_timestamp_must_be_a_datetime(self):
        with pytest.raises(ValidationError):
            validation.validate_submission(**valid_submission_kwargs(recorded_at="2024-03-01T10:00:00Z"))

    def test_missing_submitter(self):
        with pytest.raises(ValidationError):
            validation.validate_submission(**valid_submission_kwargs(submitted_by=""))

    def test_submitter_longer_than_its_column(self):
        with pytest.raises(ValidationError) as excinfo:
            validation.validate_submission(**valid_submission_kwargs(submitted_by="x" * 37))

        assert excinfo.value.errors == ["recorded_by must be at most 36 characters"]

    @pytest.mark.parametrize("evidence_hash", ["abc", "g" * 64, "a" * 65])
    def test_evidence_hash_format(self, evidence_hash):
        with pytest.raises(ValidationError):
            validation.validate_submission(**valid_submission_kwargs(evidence_hash=evidence_hash))
