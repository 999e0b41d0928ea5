"""Validation of mutation arguments."""

from __future__ import annotations

import re
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ...exceptions import InputValidationError

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+$")

ModelT = TypeVar("ModelT", bound=BaseModel)


class NewUser(BaseModel):
    """Arguments of ``addUser``. Names are kept exactly as given."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    email: str
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        if not EMAIL_PATTERN.match(value):
            raise ValueError("not a valid email address")
        return value


class NewMessage(BaseModel):
    """Arguments of ``sendMessage``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sent_by: str = Field(alias="sentBy", min_length=1)
    text: str


def validate_input(model: type[ModelT], arguments: dict[str, Any]) -> ModelT:
    """Validate resolver arguments, turning pydantic errors into a field error."""
    try:
        return model.model_validate(arguments)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise InputValidationError(f"Invalid input: {details}") from e
