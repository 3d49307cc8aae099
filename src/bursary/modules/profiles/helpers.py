"""
Student Profile Helpers

Small derivations shared by the profile service and schemas.
"""

import re
from datetime import date

# Kenyan mobile numbers after normalisation: 07XXXXXXXX or 01XXXXXXXX
PHONE_PATTERN = re.compile(r"^(07|01)\d{8}$")
NATIONAL_ID_PATTERN = re.compile(r"^\d{8}$")


def calculate_age(date_of_birth: date, today: date | None = None) -> int:
    """Age in whole years on `today` (defaults to the current date)."""
    today = today or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def get_age_range(date_of_birth: date | None, today: date | None = None) -> str | None:
    """Bucket a date of birth into the age range shown to reviewers."""
    if date_of_birth is None:
        return None

    age = calculate_age(date_of_birth, today)
    if age < 18:
        return "Under 18"
    if age <= 22:
        return "18-22"
    if age <= 27:
        return "23-27"
    if age <= 32:
        return "28-32"
    return "33+"


def normalize_phone(phone: str) -> str:
    """Strip formatting and rewrite a +254/254 prefix to a leading 0."""
    cleaned = re.sub(r"\D", "", phone)
    if cleaned.startswith("254"):
        cleaned = "0" + cleaned[3:]
    return cleaned


def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_PATTERN.match(normalize_phone(phone)))
