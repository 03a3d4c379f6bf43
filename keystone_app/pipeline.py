"""Transactions: access rules, the status pipeline and its board/table projections."""

import datetime
import re
import secrets

from flask import current_app

from keystone_app.errors import ForbiddenError, NotFoundError, ValidationFailure
from keystone_app.templates import INITIAL_STAGE, PIPELINE_STAGE_LABELS, PIPELINE_STAGES

DATE_FIELDS = ("contract_execution_date", "option_period_expiration", "closing_date")
ACCESS_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ACCESS_CODE_LENGTH = 8


def normalize_stage(value):
    normalized = re.sub(r"[\s\-]+", "_", str(value or "").strip().lower())
    if normalized not in PIPELINE_STAGES:
        raise ValidationFailure(
            "Invalid transaction status",
            details=[
                {
                    "field": "status",
                    "message": f"Must be one of: {', '.join(PIPELINE_STAGES)}",
                }
            ],
        )
    return normalized


def normalize_transaction_date(value):
    """Pin a date to 12:00 UTC of its calendar day (stored naive, UTC)."""
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc)
        value = value.date()
    return datetime.datetime(value.year, value.month, value.day, 12, 0, 0)


def _normalize_dates(fields):
    for name in DATE_FIELDS:
        if name in fields:
            fields[name] = normalize_transaction_date(fields[name])
    return fields


def generate_access_code(storage):
    while True:
        code = "".join(
            secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(ACCESS_CODE_LENGTH)
        )
        if storage.get_transaction_by_access_code(code) is None:
            return code


# access -------------------------------------------------------------------


def can_read(user, transaction):
    return transaction.agent_id == user.id or transaction.has_participant(user.id)


def can_write(user, transaction):
    return user.is_agent and transaction.agent_id == user.id


def load_transaction(storage, user, transaction_id, write=False):
    transaction = storage.get_transaction(transaction_id)
    if transaction is None:
        raise NotFoundError("Transaction not found")
    allowed = can_write(user, transaction) if write else can_read(user, transaction)
    if not allowed:
        raise ForbiddenError("You do not have access to this transaction")
    return transaction


def visible_transactions(storage, user):
    if user.is_agent:
        return storage.list_transactions(user.id)
    return storage.list_participating_transactions(user.id)


def _check_client(storage, user, client_id):
    if client_id is None:
        return
    client = storage.get_client(client_id)
    if client is None or client.agent_id != user.id:
        raise ValidationFailure(
            "Validation failed",
            details=[{"field": "clientId", "message": "Unknown client"}],
        )


# CRUD ---------------------------------------------------------------------


def create_transaction(storage, user, fields):
    if not user.is_agent:
        raise ForbiddenError("Only agents can create transactions")

    fields = _normalize_dates(dict(fields))
    access_code = fields.pop("access_code", None)
    if access_code:
        if storage.get_transaction_by_access_code(access_code) is not None:
            raise ValidationFailure(
                "Validation failed",
                details=[{"field": "accessCode", "message": "Access code is already in use"}],
            )
    else:
        access_code = generate_access_code(storage)

    status = fields.pop("status", None)
    fields["status"] = normalize_stage(status) if status else INITIAL_STAGE
    _check_client(storage, user, fields.get("client_id"))

    transaction = storage.create_transaction(
        dict(
            fields,
            agent_id=user.id,
            access_code=access_code,
            participants=[{"userId": user.id, "role": "agent"}],
        )
    )
    current_app.logger.info(
        "Transaction %s created by agent %s at %s",
        transaction.id,
        user.id,
        transaction.address,
    )
    return transaction


def update_transaction(storage, user, transaction_id, changes):
    transaction = load_transaction(storage, user, transaction_id, write=True)
    fields = _normalize_dates(dict(changes))
    if "status" in fields:
        fields["status"] = normalize_stage(fields["status"])
    if "client_id" in fields:
        _check_client(storage, user, fields["client_id"])
    for required in ("street_name", "city", "state", "zip_code", "type"):
        if required in fields and not fields[required]:
            del fields[required]
    if not fields:
        return transaction
    updated = storage.update_transaction(transaction.id, fields)
    if updated.status != transaction.status:
        current_app.logger.info(
            "Transaction %s moved from %s to %s",
            transaction.id,
            transaction.status,
            updated.status,
        )
    return updated


def update_status(storage, user, transaction_id, new_status):
    """Move a transaction to another pipeline stage.

    Any stage may follow any other; only the owning agent may move it.
    """
    transaction = storage.get_transaction(transaction_id)
    if transaction is None:
        raise NotFoundError("Transaction not found")
    if not can_write(user, transaction):
        raise ForbiddenError("Only the owning agent can change the status")
    status = normalize_stage(new_status)
    if status == transaction.status:
        return transaction
    updated = storage.update_transaction(transaction.id, {"status": status})
    current_app.logger.info(
        "Transaction %s moved from %s to %s", transaction.id, transaction.status, status
    )
    return updated


def delete_transaction(storage, user, transaction_id):
    transaction = load_transaction(storage, user, transaction_id, write=True)
    storage.delete_transaction(transaction.id)
    current_app.logger.info("Transaction %s deleted by agent %s", transaction.id, user.id)
    return transaction


def claim_transaction(storage, user, access_code):
    transaction = storage.get_transaction_by_access_code((access_code or "").strip())
    if transaction is None:
        raise NotFoundError("No transaction matches that access code")
    transaction = storage.add_participant(transaction.id, user.id, user.role)
    storage.update_user(
        user.id,
        {
            "claimed_transaction_id": transaction.id,
            "claimed_access_code": transaction.access_code,
        },
    )
    current_app.logger.info("User %s claimed transaction %s", user.id, transaction.id)
    return transaction


# projections --------------------------------------------------------------


def board(transactions):
    columns = []
    for stage in PIPELINE_STAGES:
        columns.append(
            {
                "id": stage,
                "title": PIPELINE_STAGE_LABELS[stage],
                "transactions": [t.to_dict() for t in transactions if t.status == stage],
            }
        )
    return columns


def table_rows(transactions, clients, sort=None, order="asc"):
    clients_by_id = {client.id: client for client in clients}
    rows = []
    for transaction in transactions:
        row = transaction.to_dict()
        client = clients_by_id.get(transaction.client_id)
        row["clientName"] = client.full_name if client else None
        row["statusLabel"] = PIPELINE_STAGE_LABELS.get(transaction.status, transaction.status)
        if transaction.contract_price is not None and transaction.commission is not None:
            row["commissionUsd"] = round(
                transaction.contract_price * transaction.commission / 100, 2
            )
        else:
            row["commissionUsd"] = None
        rows.append(row)

    if not sort:
        return rows
    if rows and sort not in rows[0]:
        raise ValidationFailure(
            "Validation failed",
            details=[{"field": "sort", "message": f"Unknown column: {sort}"}],
        )
    if order not in ("asc", "desc"):
        raise ValidationFailure(
            "Validation failed",
            details=[{"field": "order", "message": "Must be asc or desc"}],
        )

    present = [row for row in rows if row.get(sort) is not None]
    missing = [row for row in rows if row.get(sort) is None]

    def sort_key(row):
        value = row[sort]
        return value.lower() if isinstance(value, str) else value

    present.sort(key=sort_key, reverse=order == "desc")
    return present + missing
