"""Contact form validation.

Every rule runs on every call so the form can show all problems at once.
Pure: no I/O, no mutation of the draft.
"""

import re

from intake.models.submission import DraftSubmission
from intake.services.attachments import MAX_PHOTOS, MIN_PHOTOS
from intake.services.phone import LOCAL_DIGITS, phone_digits

# Structural check only: something@something.something, no whitespace
EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def is_valid_email(value: str) -> bool:
    return EMAIL_RE.fullmatch(value) is not None


def validate_submission(draft: DraftSubmission, photo_count: int) -> dict[str, str]:
    """Return a field -> message mapping; empty means the form can be submitted."""
    errors: dict[str, str] = {}

    if not draft.name.strip():
        errors["name"] = "Name is required"

    if not draft.email.strip():
        errors["email"] = "Email is required"
    elif not is_valid_email(draft.email):
        errors["email"] = "Please enter a valid email address"

    if not draft.phone.strip():
        errors["phone"] = "Phone number is required"
    elif len(phone_digits(draft.phone)) != LOCAL_DIGITS:
        errors["phone"] = "Please enter a valid 10-digit Indian mobile number"

    if not draft.subject.strip():
        errors["subject"] = "Subject is required"

    if not draft.description.strip():
        errors["description"] = "Description is required"

    if photo_count < MIN_PHOTOS or photo_count > MAX_PHOTOS:
        errors["photos"] = f"Please upload between {MIN_PHOTOS} and {MAX_PHOTOS} photos"

    return errors
