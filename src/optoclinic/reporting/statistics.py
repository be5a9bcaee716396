"""Report statistics — pure aggregation over already-fetched records.

Three independent views feed the reporting dashboard:

* patient statistics (growth, sex split, average age)
* appointment statistics (status counts and rates)
* prescription statistics (lens categories, most common frame/lens)

Percentages and averages are rounded half up to integers.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from optoclinic.models.appointment import AppointmentStatus

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from optoclinic.models.appointment import Appointment
    from optoclinic.models.patient import Patient

__all__ = [
    "AppointmentStats",
    "PatientStats",
    "PrescriptionStats",
    "compute_appointment_stats",
    "compute_patient_stats",
    "compute_prescription_stats",
]

NOT_AVAILABLE = "N/A"

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class PatientStats:
    total_patients: int
    new_patients_this_month: int
    new_patients_last_month: int
    male_patients: int
    female_patients: int
    other_patients: int
    average_age: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AppointmentStats:
    total_appointments: int
    completed_appointments: int
    scheduled_appointments: int
    cancelled_appointments: int
    no_show_appointments: int
    completion_rate: int
    cancellation_rate: int
    no_show_rate: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PrescriptionStats:
    total_prescriptions: int
    single_vision: int
    bifocal: int
    progressive: int
    most_common_frame_type: str
    most_common_lens_type: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _rates(parts: Sequence[int], total: int) -> list[int]:
    """Rounded percentages of *total* whose sum never exceeds 100.

    Independent rounding can overshoot (1/6 + 1/6 + 4/6 rounds to 101); the
    rate that was rounded up the most gives the point back.
    """
    if total <= 0:
        return [0 for _ in parts]
    exact = [part / total * 100 for part in parts]
    rounded = [_round_half_up(x) for x in exact]
    while sum(rounded) > 100:
        i = max(range(len(rounded)), key=lambda j: rounded[j] - exact[j])
        rounded[i] -= 1
    return rounded


def _parse_age(value: Any) -> int:
    """Leading integer of *value*; anything unparseable counts as 0."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int | float):
        return int(value) if math.isfinite(value) else 0
    match = _LEADING_INT_RE.match(str(value))
    return int(match.group(1)) if match else 0


def _creation_time(value: Any, now: datetime) -> datetime | None:
    if isinstance(value, datetime):
        created = value
    elif isinstance(value, str) and value:
        try:
            created = datetime.fromisoformat(value)
        except ValueError:
            return None
    else:
        return None
    if created.tzinfo is not None and now.tzinfo is not None:
        created = created.astimezone(now.tzinfo)
    return created


def _previous_month(year: int, month: int) -> tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def _most_common(values: Iterable[str | None]) -> str:
    """Most frequent non-empty value; ties go to the first one seen."""
    counts = Counter(v for v in values if v)
    if not counts:
        return NOT_AVAILABLE
    # most_common() is a stable sort, so insertion order breaks ties
    return counts.most_common(1)[0][0]


def compute_patient_stats(patients: Sequence[Patient], now: datetime) -> PatientStats:
    """Patient counts relative to the calendar month of *now*.

    Missing or unparseable ages count as 0 and stay in the denominator.
    """
    this_month = (now.year, now.month)
    last_month = _previous_month(now.year, now.month)

    new_this_month = 0
    new_last_month = 0
    for p in patients:
        created = _creation_time(p.created_at, now)
        if created is None:
            continue
        key = (created.year, created.month)
        if key == this_month:
            new_this_month += 1
        elif key == last_month:
            new_last_month += 1

    sexes = Counter(p.sex for p in patients)
    total = len(patients)
    average_age = (
        _round_half_up(sum(_parse_age(p.age) for p in patients) / total) if total else 0
    )

    return PatientStats(
        total_patients=total,
        new_patients_this_month=new_this_month,
        new_patients_last_month=new_last_month,
        male_patients=sexes["male"],
        female_patients=sexes["female"],
        other_patients=sexes["other"],
        average_age=average_age,
    )


def compute_appointment_stats(appointments: Sequence[Appointment]) -> AppointmentStats:
    statuses = Counter(str(a.status) for a in appointments)
    total = len(appointments)
    completed = statuses[AppointmentStatus.COMPLETED.value]
    cancelled = statuses[AppointmentStatus.CANCELLED.value]
    no_show = statuses[AppointmentStatus.NO_SHOW.value]
    completion_rate, cancellation_rate, no_show_rate = _rates(
        [completed, cancelled, no_show], total
    )

    return AppointmentStats(
        total_appointments=total,
        completed_appointments=completed,
        scheduled_appointments=statuses[AppointmentStatus.SCHEDULED.value],
        cancelled_appointments=cancelled,
        no_show_appointments=no_show,
        completion_rate=completion_rate,
        cancellation_rate=cancellation_rate,
        no_show_rate=no_show_rate,
    )


def compute_prescription_stats(patients: Sequence[Patient]) -> PrescriptionStats:
    """Lens categories are substring matches, so one lens can land in two."""
    lens_types = [str(p.lens_type or "").lower() for p in patients]

    return PrescriptionStats(
        total_prescriptions=len(patients),
        single_vision=sum("single" in lens for lens in lens_types),
        bifocal=sum("bifocal" in lens for lens in lens_types),
        progressive=sum("progressive" in lens for lens in lens_types),
        most_common_frame_type=_most_common(p.frame_type for p in patients),
        most_common_lens_type=_most_common(p.lens_type for p in patients),
    )
