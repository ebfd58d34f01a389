"""Field schemas for each form type.

Each schema is the ordered list of data keys a form carries, in the order
the form presents them. Labels are derived from the key unless overridden.
"""

import re

from intake_portal.models.form import FormType

_HYPHENATED_PREFIX = re.compile(r"\b(Pre|Post) ")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

_CONTACT = (
    "first_name",
    "last_name",
    "address1",
    "address2",
    "city",
    "state",
    "zip_code",
    "email",
    "phone",
    "phone_number",
    "phone_type",
)

_LITIGATION = (
    "matter_no",
    "settlement_date",
    "trial_date",
    "trial_location",
    "opposing_counsel_firm",
    "opposing_economist",
)

_HOUSEHOLD_SERVICES = (
    "dependent_care",
    "pet_care",
    "indoor_housework",
    "meal_prep",
    "home_maintenance",
    "vehicle_maintenance",
    "errands",
)

_BENEFITS = (
    "life_insurance",
    "individual_health",
    "family_health",
    "retirement_plan",
    "investment_plan",
    "bonus",
    "stock_options",
    "other_benefits",
)

_EMPLOYMENT = (
    "employment_status",
    "job_title",
    "employer",
    "start_date",
    "salary",
    "duties",
    "advancements",
    "overtime",
    "work_steady",
)


def _prefixed(prefix: str, keys: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(f"{prefix}_{key}" for key in keys)


PERSONAL_INJURY_FIELDS: tuple[str, ...] = (
    *_CONTACT,
    "gender",
    "marital_status",
    "ethnicity",
    "date_of_birth",
    "incident_date",
    "injury_description",
    "caregiver_claim",
    "life_expectancy",
    "future_medical",
    "pre_injury_education",
    "pre_injury_skills",
    "education_plans",
    "parent_education",
    "post_injury_education",
    *_prefixed("pre_injury", _EMPLOYMENT),
    *_prefixed("pre_injury", _BENEFITS),
    "pre_injury_retirement_age",
    "pre_injury_career_trajectory",
    "pre_injury_job_expenses",
    "disability_rating",
    *_prefixed("post_injury", _EMPLOYMENT),
    *_prefixed("post_injury", _BENEFITS),
    "post_injury_retirement_age",
    "post_injury_job_expenses",
    "additional_info",
    *_HOUSEHOLD_SERVICES,
    *_LITIGATION,
    "household_members",
    "pre_injury_years",
    "post_injury_years",
    "uploaded_files",
)

WRONGFUL_DEATH_FIELDS: tuple[str, ...] = (
    *_CONTACT,
    "gender",
    "marital_status",
    "date_of_birth",
    "date_of_death",
    "ethnicity",
    "health_issues",
    "work_missed",
    "education_level",
    "skills_licenses",
    "employment_status",
    "job_title",
    "employer_name",
    "start_date",
    "salary",
    "work_duties",
    "advancements",
    "overtime",
    "work_steady",
    "retirement_age",
    "career_trajectory",
    "job_expenses",
    *_BENEFITS,
    *_HOUSEHOLD_SERVICES,
    *_LITIGATION,
    "additional_info",
    "household_dependents",
    "other_dependents",
    "employment_years",
    "uploaded_files",
)

WRONGFUL_TERMINATION_FIELDS: tuple[str, ...] = (
    *_CONTACT,
    "gender",
    "marital_status",
    "date_of_birth",
    "date_of_termination",
    "ethnicity",
    "pre_termination_education",
    "pre_termination_skills",
    "pre_termination_education_plans",
    "post_termination_education",
    *_prefixed("pre_termination", _EMPLOYMENT),
    "pre_termination_retirement_age",
    "pre_termination_career_trajectory",
    "pre_termination_job_expenses",
    *_prefixed("pre_termination", _BENEFITS),
    *_prefixed("post_termination", _EMPLOYMENT),
    "post_termination_retirement_age",
    "post_termination_job_expenses",
    *_prefixed("post_termination", _BENEFITS),
    *_LITIGATION,
    "additional_info",
    "pre_termination_years",
    "post_termination_years",
    "uploaded_files",
)

FORM_FIELDS: dict[FormType, tuple[str, ...]] = {
    FormType.PERSONAL_INJURY: PERSONAL_INJURY_FIELDS,
    FormType.WRONGFUL_DEATH: WRONGFUL_DEATH_FIELDS,
    FormType.WRONGFUL_TERMINATION: WRONGFUL_TERMINATION_FIELDS,
}

# Keys whose derived label reads poorly
LABEL_OVERRIDES: dict[str, str] = {
    "address1": "Address 1",
    "address2": "Address 2",
    "phone_number": "Phone",
    "matter_no": "Matter No.",
}


def snake_case(key: str) -> str:
    """Normalize a camelCase key (``phoneNumber`` -> ``phone_number``)."""
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def humanize(key: str) -> str:
    """Turn a machine key into a display label (``zip_code`` -> ``Zip Code``)."""
    label = snake_case(key).replace("_", " ").strip().title()
    label = label.replace(" Of ", " of ")
    return _HYPHENATED_PREFIX.sub(r"\1-", label)


def field_label(key: str) -> str:
    """Display label for a data key."""
    return LABEL_OVERRIDES.get(key) or LABEL_OVERRIDES.get(snake_case(key)) or humanize(key)


def field_order(form_type: FormType | None) -> tuple[str, ...]:
    """Declared key order for a form type; empty when unknown."""
    if form_type is None:
        return ()
    return FORM_FIELDS.get(FormType(form_type), ())
