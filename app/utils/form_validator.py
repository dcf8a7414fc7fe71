from datetime import date
from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from app.services.errors import FieldViolation, ValidationError


ItemCategory = Literal[
    "electronics",
    "documents",
    "bags",
    "clothing",
    "accessories",
    "keys",
    "jewelry",
    "sports",
    "books",
    "other",
]

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class ValidatedItemFields(BaseModel):
    title: str = Field(min_length=3, max_length=100)
    category: ItemCategory
    description: Optional[str] = Field(default=None, max_length=1000)
    location: str = Field(min_length=2, max_length=200)
    date_lost_found: date
    image_url: Optional[str] = None
    contact_email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    contact_phone: Optional[str] = Field(default=None, max_length=20)


class ValidatedCreateItem(ValidatedItemFields):
    # A new report is either lost or found, nothing else
    status: Literal["lost", "found"]


class ValidatedProfileUpdate(BaseModel):
    full_name: str = Field(min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)


OPTIONAL_TEXT_FIELDS = {"description", "image_url", "contact_email", "contact_phone", "phone"}


def _clean(values: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {}
    for field, value in values.items():
        if isinstance(value, str):
            value = value.strip()
            if value == "" and field in OPTIONAL_TEXT_FIELDS:
                value = None
        cleaned[field] = value
    return cleaned


def _violations(e: PydanticValidationError) -> list[FieldViolation]:
    violations = []
    for err in e.errors():
        field = ".".join(str(part) for part in err["loc"]) or "__root__"
        violations.append(FieldViolation(field=field, message=err["msg"]))
    return violations


def validate_item_fields(values: Dict[str, Any], creating: bool = True) -> ValidatedItemFields:
    """Validate item fields for both the create and the update path.

    Strings are stripped and empty optional fields become None. On any
    violation a ValidationError listing every offending field is raised.
    """
    model = ValidatedCreateItem if creating else ValidatedItemFields
    try:
        return model(**_clean(values))
    except PydanticValidationError as e:
        raise ValidationError(_violations(e)) from e


def validate_profile_fields(values: Dict[str, Any]) -> ValidatedProfileUpdate:
    try:
        return ValidatedProfileUpdate(**_clean(values))
    except PydanticValidationError as e:
        raise ValidationError(_violations(e)) from e
