"""Step and field definitions for every booking wizard in the portal."""
from __future__ import annotations

from careflow.models.catalog import DOCTORS, LAB_TEST_NAMES
from careflow.models.wizard import (
    CHOICE,
    DATE,
    MULTI,
    NUMBER,
    TEXT,
    TIME,
    FieldSpec,
    FlowDefinition,
    StepDefinition,
    Wizard,
)

BLOOD_GROUPS = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")
SEXES = ("male", "female", "other")
LAB_TIME_SLOTS = (
    "09:00 AM",
    "10:00 AM",
    "11:00 AM",
    "12:00 PM",
    "02:00 PM",
    "03:00 PM",
    "04:00 PM",
    "05:00 PM",
)
APPOINTMENT_TIMES = ("09:00", "10:00", "11:00", "14:00", "15:00", "16:00")
ACTIVITY_LEVELS = ("sedentary", "light", "moderate", "active", "very_active")
GOALS = ("lose", "gain")

LAB_TEST_FLOW = FlowDefinition(
    name="lab_test",
    steps=(
        StepDefinition(
            title="Personal Information",
            fields=(
                FieldSpec("name", TEXT, required=True),
                FieldSpec("age", TEXT, required=True),
                FieldSpec("blood_group", CHOICE, required=True, choices=BLOOD_GROUPS),
                FieldSpec("sex", CHOICE, required=True, choices=SEXES),
                FieldSpec("mobile", TEXT, required=True),
                FieldSpec("address", TEXT, required=True),
                FieldSpec("landmark", TEXT),
            ),
        ),
        StepDefinition(
            title="Test Selection",
            fields=(
                FieldSpec("selected_tests", MULTI, required=True, choices=LAB_TEST_NAMES),
                FieldSpec("date", DATE, required=True),
                FieldSpec("preferred_time", CHOICE, required=True, choices=LAB_TIME_SLOTS),
                FieldSpec("alternative_time", CHOICE, required=True, choices=LAB_TIME_SLOTS),
            ),
        ),
        StepDefinition(
            title="Health Information",
            fields=(
                FieldSpec("existing_health", MULTI),
                FieldSpec("current_medications", TEXT),
                FieldSpec("allergies", TEXT),
                FieldSpec("other_health_issue", TEXT),
            ),
        ),
        StepDefinition(title="Review"),
    ),
)

APPOINTMENT_FLOW = FlowDefinition(
    name="appointment",
    steps=(
        StepDefinition(
            title="Choose Doctor",
            fields=(
                FieldSpec(
                    "doctor_id",
                    CHOICE,
                    required=True,
                    choices=tuple(str(doctor.id) for doctor in DOCTORS),
                ),
            ),
        ),
        StepDefinition(
            title="Date and Time",
            fields=(
                FieldSpec("date", DATE, required=True),
                FieldSpec("time", CHOICE, required=True, choices=APPOINTMENT_TIMES),
            ),
        ),
        StepDefinition(title="Review", fields=(FieldSpec("reason", TEXT),)),
    ),
)

DIET_FLOW = FlowDefinition(
    name="diet",
    steps=(
        StepDefinition(
            title="About You",
            fields=(
                FieldSpec("height", NUMBER, required=True),
                FieldSpec("weight", NUMBER, required=True),
                FieldSpec("age", NUMBER, required=True),
                FieldSpec("gender", CHOICE, required=True, choices=("male", "female")),
                FieldSpec("activity_level", CHOICE, choices=ACTIVITY_LEVELS, default="moderate"),
            ),
        ),
        StepDefinition(
            title="Your Goal",
            fields=(
                FieldSpec("goal", CHOICE, choices=GOALS, default="lose"),
                FieldSpec("goal_weight", NUMBER, required=True),
            ),
        ),
        StepDefinition(
            title="Blood Sugar",
            fields=(FieldSpec("sugar_level", NUMBER, required=True),),
        ),
    ),
)

FLOWS: dict[str, FlowDefinition] = {
    flow.name: flow for flow in (LAB_TEST_FLOW, APPOINTMENT_FLOW, DIET_FLOW)
}


def get_flow(name: str) -> FlowDefinition:
    """Look up a flow by name, accepting ``lab-test`` style spellings."""

    key = (name or "").strip().lower().replace("-", "_")
    try:
        return FLOWS[key]
    except KeyError as exc:
        raise KeyError(f"Unknown wizard flow {name!r}.") from exc


def new_wizard(name: str) -> Wizard:
    return Wizard(get_flow(name))
