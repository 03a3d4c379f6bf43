"""Request payload models.

Every JSON body is parsed through one of these models before it reaches a
service. Field names follow the camelCase used on the wire; the Python
attributes are snake_case.
"""

import datetime
import re
from typing import List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from keystone_app.errors import ValidationFailure
from keystone_app.templates import (
    CLIENT_STATUSES,
    CLIENT_TYPES,
    CONTACT_ROLES,
    TRANSACTION_TYPES,
    USER_ROLES,
)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _to_camel(name):
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )

    def changes(self):
        """Only the fields the caller actually sent, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _check_email(value):
    if value is not None and not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email address")
    return value.lower() if value else value


def _parse_datetime(value):
    value = _blank_to_none(value)
    if value is None or isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError("Invalid date") from exc
    raise ValueError("Invalid date")


def _split_labels(value):
    value = _blank_to_none(value)
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        raise ValueError("Labels must be a list or a comma-separated string")
    labels = []
    for label in value:
        text = str(label).strip()
        if text and text not in labels:
            labels.append(text)
    return labels


def _lower_choice(value, choices, label):
    if value is None:
        return value
    normalized = str(value).strip().lower()
    if normalized not in choices:
        raise ValueError(f"{label} must be one of: {', '.join(choices)}")
    return normalized


def format_errors(exc):
    details = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "__root__"]
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        details.append({"field": ".".join(location) or None, "message": message})
    return details


def parse_payload(schema, data):
    """Validate ``data`` against ``schema`` and raise ``ValidationFailure`` on mismatch."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationFailure("Request body must be a JSON object")
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailure("Validation failed", details=format_errors(exc)) from exc


# auth ---------------------------------------------------------------------


class RegisterPayload(Payload):
    email: str
    password: str = Field(min_length=8)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    role: str = "client"
    agent_id: Optional[int] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, value):
        return _check_email(value)

    @field_validator("role", mode="before")
    @classmethod
    def validate_role(cls, value):
        return _lower_choice(_blank_to_none(value) or "client", USER_ROLES, "Role")


class LoginPayload(Payload):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


# clients ------------------------------------------------------------------


class ClientPayload(Payload):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    type: str = "buyer"
    status: str = "active"
    notes: Optional[str] = None
    labels: List[str] = Field(default_factory=list)

    @field_validator("email", "phone", "address", "notes", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        return _blank_to_none(value)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value):
        return _check_email(value)

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, value):
        return _lower_choice(_blank_to_none(value) or "buyer", CLIENT_TYPES, "Type")

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, value):
        return _lower_choice(_blank_to_none(value) or "active", CLIENT_STATUSES, "Status")

    @field_validator("labels", mode="before")
    @classmethod
    def validate_labels(cls, value):
        return _split_labels(value)


class ClientUpdatePayload(Payload):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    labels: Optional[List[str]] = None

    @field_validator("email", "phone", "address", "notes", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        return _blank_to_none(value)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value):
        return _check_email(value)

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, value):
        return _lower_choice(_blank_to_none(value), CLIENT_TYPES, "Type")

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, value):
        return _lower_choice(_blank_to_none(value), CLIENT_STATUSES, "Status")

    @field_validator("labels", mode="before")
    @classmethod
    def validate_labels(cls, value):
        return _split_labels(value)

    @model_validator(mode="after")
    def names_not_cleared(self):
        for name in ("first_name", "last_name"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{_to_camel(name)} cannot be empty")
        return self


class ClientImportPayload(Payload):
    csv_data: str = Field(min_length=1)
    skip_invalid: bool = False


# transactions -------------------------------------------------------------


class _TransactionFields(Payload):
    client_id: Optional[int] = None
    contract_price: Optional[int] = Field(default=None, ge=0)
    commission: Optional[float] = Field(default=None, ge=0, le=100)
    earnest_money: Optional[int] = Field(default=None, ge=0)
    option_fee: Optional[int] = Field(default=None, ge=0)
    down_payment: Optional[int] = Field(default=None, ge=0)
    seller_concessions: Optional[int] = Field(default=None, ge=0)
    contract_execution_date: Optional[datetime.datetime] = None
    option_period_expiration: Optional[datetime.datetime] = None
    closing_date: Optional[datetime.datetime] = None
    mls_number: Optional[str] = None
    financing: Optional[str] = None

    @field_validator(
        "client_id",
        "contract_price",
        "commission",
        "earnest_money",
        "option_fee",
        "down_payment",
        "seller_concessions",
        "mls_number",
        "financing",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, value):
        return _blank_to_none(value)

    @field_validator(
        "contract_execution_date",
        "option_period_expiration",
        "closing_date",
        mode="before",
    )
    @classmethod
    def parse_dates(cls, value):
        return _parse_datetime(value)


class TransactionPayload(_TransactionFields):
    street_name: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip_code: str = Field(min_length=1)
    access_code: Optional[str] = Field(default=None, min_length=6, max_length=64)
    status: Optional[str] = None
    type: str = "buy"

    @field_validator("access_code", "status", mode="before")
    @classmethod
    def optional_text(cls, value):
        return _blank_to_none(value)

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, value):
        return _lower_choice(_blank_to_none(value) or "buy", TRANSACTION_TYPES, "Type")


class TransactionUpdatePayload(_TransactionFields):
    street_name: Optional[str] = Field(default=None, min_length=1)
    city: Optional[str] = Field(default=None, min_length=1)
    state: Optional[str] = Field(default=None, min_length=1)
    zip_code: Optional[str] = Field(default=None, min_length=1)
    status: Optional[str] = None
    type: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, value):
        return _lower_choice(_blank_to_none(value), TRANSACTION_TYPES, "Type")


class StatusPayload(Payload):
    status: str = Field(min_length=1)


class ClaimPayload(Payload):
    access_code: str = Field(min_length=1)


# checklists ---------------------------------------------------------------


class ChecklistItemPayload(Payload):
    completed: bool


class ChecklistChange(Payload):
    id: str = Field(min_length=1)
    completed: bool


class ChecklistBulkPayload(Payload):
    items: List[ChecklistChange] = Field(min_length=1)


# documents ----------------------------------------------------------------


class _DocumentFields(Payload):
    status: Optional[str] = None
    deadline: Optional[datetime.date] = None
    deadline_time: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("status", "deadline", "notes", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        return _blank_to_none(value)

    @field_validator("deadline_time", mode="before")
    @classmethod
    def validate_time(cls, value):
        value = _blank_to_none(value)
        if value is not None and not TIME_PATTERN.match(str(value).strip()):
            raise ValueError("deadlineTime must use HH:MM")
        return value


class DocumentPayload(_DocumentFields):
    name: str = Field(min_length=1, max_length=200)


class DocumentUpdatePayload(_DocumentFields):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)


# contacts -----------------------------------------------------------------


class _ContactFields(Payload):
    email: Optional[str] = None
    phone: Optional[str] = None
    mobile_phone: Optional[str] = None

    @field_validator("email", "phone", "mobile_phone", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        return _blank_to_none(value)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value):
        return _check_email(value)


def _check_role(value):
    if value is None:
        return value
    for role in CONTACT_ROLES:
        if role.lower() == str(value).strip().lower():
            return role
    raise ValueError(f"Role must be one of: {', '.join(CONTACT_ROLES)}")


class ContactCandidate(_ContactFields):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    role: Optional[str] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, value):
        return _check_role(value)


class ContactPayload(_ContactFields):
    transaction_id: Optional[int] = None
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    resolution: str = "check"
    client_id: Optional[int] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, value):
        return _check_role(value)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def blank_names(cls, value):
        return _blank_to_none(value)

    @field_validator("resolution", mode="before")
    @classmethod
    def validate_resolution(cls, value):
        return _lower_choice(
            _blank_to_none(value) or "check", ("check", "new", "existing"), "Resolution"
        )

    @model_validator(mode="after")
    def check_resolution_inputs(self):
        # an existing client supplies the names
        if self.resolution == "existing":
            if self.client_id is None:
                raise ValueError("clientId is required when resolution is 'existing'")
            return self
        missing = [
            _to_camel(name) for name in ("first_name", "last_name") if getattr(self, name) is None
        ]
        if missing:
            verb = "is" if len(missing) == 1 else "are"
            raise ValueError(f"{' and '.join(missing)} {verb} required")
        return self


class ContactUpdatePayload(_ContactFields):
    role: Optional[str] = None
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)

    @field_validator("role")
    @classmethod
    def validate_role(cls, value):
        return _check_role(value)


# messages -----------------------------------------------------------------


class MessagePayload(Payload):
    content: str = Field(min_length=1, max_length=5000)
    transaction_id: Optional[int] = None
    recipient_id: Optional[int] = None

    @model_validator(mode="after")
    def one_target(self):
        if (self.transaction_id is None) == (self.recipient_id is None):
            raise ValueError("Provide exactly one of transactionId or recipientId")
        return self


# calculators --------------------------------------------------------------

MAX_RATE_PCT = 100


class _CalculatorPayload(Payload):
    model_config = ConfigDict(allow_inf_nan=False)


class MortgagePayload(_CalculatorPayload):
    home_price: float = Field(ge=0)
    down_payment: float = Field(default=0, ge=0)
    interest_rate: float = Field(ge=0, le=MAX_RATE_PCT)
    loan_term: int = Field(default=30, gt=0, le=50)


class RefinancePayload(_CalculatorPayload):
    current_balance: float = Field(gt=0)
    current_rate: float = Field(ge=0, le=MAX_RATE_PCT)
    remaining_years: int = Field(gt=0, le=50)
    new_rate: float = Field(ge=0, le=MAX_RATE_PCT)
    new_term: int = Field(default=30, gt=0, le=50)
    closing_costs: float = Field(default=0, ge=0)


class RentVsBuyPayload(_CalculatorPayload):
    monthly_rent: float = Field(ge=0)
    home_price: float = Field(ge=0)
    down_payment: float = Field(default=0, ge=0)
    interest_rate: float = Field(ge=0, le=MAX_RATE_PCT)
    loan_term: int = Field(default=30, gt=0, le=50)
