"""
Input validation for task creation and event submission.

Constraints are plain data; each validate_* function collects every violation
and raises a single ValidationError before anything reaches persistence.
"""
import math
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from tracking.domain.exceptions import ValidationError
from tracking.domain.model import EventType, ExamType

FIELD_CONSTRAINTS = {
    "sealed_pack_code": {"type": str, "min_length": 3, "max_length": 100},
    "source_location": {"type": str, "min_length": 1, "max_length": 255},
    "destination_location": {"type": str, "min_length": 1, "max_length": 255},
    "assigned_user_id": {"type": str, "min_length": 1, "max_length": 36},
    "latitude": {"type": (int, float), "min": -90, "max": 90},
    "longitude": {"type": (int, float), "min": -180, "max": 180},
    "geofence_radius_meters": {"type": (int, float), "min": 10, "max": 1000},
    "exam_type": {"enum": ExamType},
    "event_type": {"enum": EventType},
    "recorded_by": {"type": str, "min_length": 1, "max_length": 36},
    "evidence_hash": {"type": str, "pattern": re.compile(r"^[0-9a-fA-F]{64}$")},
}


def check_field(name: str, value: Any, constraint: Optional[Dict[str, Any]] = None) -> List[str]:
    """Check a single value against its constraint; returns the list of violations."""
    constraint = constraint or FIELD_CONSTRAINTS[name]
    errors = []

    if value is None:
        return [f"{name} is required"]

    enum = constraint.get("enum")
    if enum is not None:
        try:
            enum(value)
        except ValueError:
            allowed = ", ".join(member.value for member in enum)
            errors.append(f"{name} must be one of: {allowed}")
        return errors

    expected = constraint.get("type")
    # bool is an int subclass but never a valid number here
    if expected is not None and (not isinstance(value, expected) or isinstance(value, bool)):
        return [f"{name} has invalid type {type(value).__name__}"]
    # NaN compares False against every bound
    if isinstance(value, float) and not math.isfinite(value):
        return [f"{name} must be a finite number"]

    if "min_length" in constraint and len(value.strip()) < constraint["min_length"]:
        errors.append(f"{name} must be at least {constraint['min_length']} characters")
    if "max_length" in constraint and len(value) > constraint["max_length"]:
        errors.append(f"{name} must be at most {constraint['max_length']} characters")
    if "min" in constraint and value < constraint["min"]:
        errors.append(f"{name} must be >= {constraint['min']}")
    if "max" in constraint and value > constraint["max"]:
        errors.append(f"{name} must be <= {constraint['max']}")
    if "pattern" in constraint and not constraint["pattern"].match(value):
        errors.append(f"{name} has invalid format")
    return errors


def _check_point(prefix: str, latitude, longitude) -> List[str]:
    if latitude is None and longitude is None:
        return []
    if latitude is None or longitude is None:
        return [f"{prefix}_latitude and {prefix}_longitude must be given together"]
    return (
        check_field(f"{prefix}_latitude", latitude, FIELD_CONSTRAINTS["latitude"])
        + check_field(f"{prefix}_longitude", longitude, FIELD_CONSTRAINTS["longitude"])
    )


def _check_timestamp(name: str, value) -> List[str]:
    if value is None:
        return [f"{name} is required"]
    if not isinstance(value, datetime):
        return [f"{name} must be a datetime"]
    return []


def validate_new_task(
    sealed_pack_code,
    source_location,
    destination_location,
    assigned_user_id,
    scheduled_start,
    scheduled_end,
    pickup_latitude=None,
    pickup_longitude=None,
    destination_latitude=None,
    destination_longitude=None,
    geofence_radius_meters=100,
    exam_type=ExamType.REGULAR,
    created_by=None,
) -> None:
    """
    Validate task creation input.

    Raises:
        ValidationError: listing every violated constraint
    """
    errors = []
    errors += check_field("sealed_pack_code", sealed_pack_code)
    errors += check_field("source_location", source_location)
    errors += check_field("destination_location", destination_location)
    errors += check_field("assigned_user_id", assigned_user_id)
    errors += check_field("geofence_radius_meters", geofence_radius_meters)
    errors += check_field("exam_type", exam_type)
    errors += _check_point("pickup", pickup_latitude, pickup_longitude)
    errors += _check_point("destination", destination_latitude, destination_longitude)
    if created_by is not None:
        errors += check_field("created_by", created_by, FIELD_CONSTRAINTS["assigned_user_id"])

    window_errors = _check_timestamp("scheduled_start", scheduled_start)
    window_errors += _check_timestamp("scheduled_end", scheduled_end)
    if not window_errors and _naive_mismatch(scheduled_start, scheduled_end):
        window_errors.append("scheduled_start and scheduled_end must both carry a timezone or both be naive")
    elif not window_errors and scheduled_end <= scheduled_start:
        window_errors.append("scheduled_end must be after scheduled_start")
    errors += window_errors

    if errors:
        raise ValidationError(errors)


def validate_submission(task_id, event_type, recorded_at, latitude, longitude, submitted_by, evidence_hash=None) -> None:
    """
    Validate an event submission.

    Raises:
        ValidationError: listing every violated constraint
    """
    errors = []
    if task_id is None or str(task_id).strip() == "":
        errors.append("task_id is required")
    errors += check_field("event_type", event_type)
    errors += _check_timestamp("recorded_at", recorded_at)
    errors += check_field("latitude", latitude)
    errors += check_field("longitude", longitude)
    errors += check_field("recorded_by", submitted_by)
    if evidence_hash is not None:
        errors += check_field("evidence_hash", evidence_hash)

    if errors:
        raise ValidationError(errors)


def _naive_mismatch(a: datetime, b: datetime) -> bool:
    return (a.tzinfo is None) != (b.tzinfo is None)
