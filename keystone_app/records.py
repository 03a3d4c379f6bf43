"""Plain records exchanged between the storage backends and the services.

Both ``MemStorage`` and ``DatabaseStorage`` hand out these dataclasses so the
rest of the application never touches ORM instances directly.
"""

import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from flask_login import UserMixin


def utcnow():
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def message_timestamp(value=None):
    """ISO-8601 UTC string with millisecond precision, sortable as text."""
    value = value or utcnow()
    return value.isoformat(timespec="milliseconds") + "Z"


def iso_datetime(value):
    if value is None:
        return None
    return value.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def iso_date(value):
    if value is None:
        return None
    return value.isoformat()


@dataclass(eq=False)
class UserRecord(UserMixin):
    id: int
    email: str
    password: str
    first_name: str
    last_name: str
    role: str
    agent_id: Optional[int] = None
    claimed_transaction_id: Optional[int] = None
    claimed_access_code: Optional[str] = None
    session_token: Optional[str] = None
    calendar_token: Optional[str] = None
    active: bool = True

    @property
    def is_active(self):
        return bool(self.active)

    @property
    def is_agent(self):
        return (self.role or "").strip().lower() == "agent"

    @property
    def display_name(self):
        parts = [p for p in [self.first_name, self.last_name] if p]
        return " ".join(parts) if parts else self.email

    def to_dict(self, include_private=False):
        data = {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role,
            "agentId": self.agent_id,
            "claimedTransactionId": self.claimed_transaction_id,
            "claimedAccessCode": self.claimed_access_code,
        }
        if include_private:
            data["calendarToken"] = self.calendar_token
        return data


@dataclass
class ClientRecord:
    id: int
    agent_id: int
    first_name: str
    last_name: str
    type: str
    status: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    labels: List[str] = field(default_factory=list)
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self):
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "type": self.type,
            "status": self.status,
            "notes": self.notes,
            "labels": list(self.labels or []),
            "agentId": self.agent_id,
            "createdAt": iso_datetime(self.created_at),
            "updatedAt": iso_datetime(self.updated_at),
        }


@dataclass
class TransactionRecord:
    id: int
    agent_id: int
    street_name: str
    city: str
    state: str
    zip_code: str
    access_code: str
    status: str
    type: str = "buy"
    client_id: Optional[int] = None
    participants: List[Dict[str, Any]] = field(default_factory=list)
    contract_price: Optional[int] = None
    commission: Optional[float] = None
    earnest_money: Optional[int] = None
    option_fee: Optional[int] = None
    down_payment: Optional[int] = None
    seller_concessions: Optional[int] = None
    contract_execution_date: Optional[datetime.datetime] = None
    option_period_expiration: Optional[datetime.datetime] = None
    closing_date: Optional[datetime.datetime] = None
    mls_number: Optional[str] = None
    financing: Optional[str] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None

    @property
    def address(self):
        locality = " ".join(p for p in [self.state, self.zip_code] if p)
        parts = [p for p in [self.street_name, self.city, locality] if p]
        return ", ".join(parts)

    @property
    def participant_ids(self):
        return {p.get("userId") for p in self.participants or []}

    def has_participant(self, user_id):
        return user_id in self.participant_ids

    def to_dict(self):
        return {
            "id": self.id,
            "address": self.address,
            "streetName": self.street_name,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "accessCode": self.access_code,
            "status": self.status,
            "type": self.type,
            "agentId": self.agent_id,
            "clientId": self.client_id,
            "participants": [dict(p) for p in self.participants or []],
            "contractPrice": self.contract_price,
            "commission": self.commission,
            "earnestMoney": self.earnest_money,
            "optionFee": self.option_fee,
            "downPayment": self.down_payment,
            "sellerConcessions": self.seller_concessions,
            "contractExecutionDate": iso_datetime(self.contract_execution_date),
            "optionPeriodExpiration": iso_datetime(self.option_period_expiration),
            "closingDate": iso_datetime(self.closing_date),
            "mlsNumber": self.mls_number,
            "financing": self.financing,
            "createdAt": iso_datetime(self.created_at),
            "updatedAt": iso_datetime(self.updated_at),
        }


@dataclass
class ChecklistRecord:
    id: int
    transaction_id: int
    role: str
    items: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self):
        return {
            "id": self.id,
            "transactionId": self.transaction_id,
            "role": self.role,
            "items": [dict(item) for item in self.items],
        }


@dataclass
class DocumentRecord:
    id: int
    transaction_id: int
    code: str
    name: str
    status: str
    deadline: Optional[datetime.date] = None
    deadline_time: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "transactionId": self.transaction_id,
            "name": self.name,
            "status": self.status,
            "deadline": iso_date(self.deadline),
            "deadlineTime": self.deadline_time,
            "notes": self.notes,
            "createdAt": iso_datetime(self.created_at),
            "updatedAt": iso_datetime(self.updated_at),
        }


@dataclass
class ContactRecord:
    id: int
    transaction_id: int
    role: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    mobile_phone: Optional[str] = None
    client_id: Optional[int] = None

    def to_dict(self):
        return {
            "id": self.id,
            "transactionId": self.transaction_id,
            "role": self.role,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "mobilePhone": self.mobile_phone,
            "clientId": self.client_id,
        }


@dataclass
class MessageRecord:
    id: int
    transaction_id: int
    user_id: int
    username: str
    role: str
    content: str
    timestamp: str

    def to_dict(self):
        return {
            "id": self.id,
            "transactionId": self.transaction_id,
            "userId": self.user_id,
            "username": self.username,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
        }


@dataclass
class PrivateMessageRecord:
    id: int
    sender_id: int
    recipient_id: int
    content: str
    timestamp: str
    read: bool = False

    def to_dict(self):
        return {
            "id": self.id,
            "senderId": self.sender_id,
            "recipientId": self.recipient_id,
            "content": self.content,
            "timestamp": self.timestamp,
            "read": self.read,
        }
