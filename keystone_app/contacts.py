from keystone_app.errors import DuplicateContactError, NotFoundError, ValidationFailure
from keystone_app.pipeline import visible_transactions

PERSONAL_FIELDS = ("first_name", "last_name", "email", "phone", "mobile_phone")
CONTACT_FIELDS = PERSONAL_FIELDS + ("role",)


def _norm(value):
    return (value or "").strip().lower()


def find_duplicate(clients, candidate):
    """Return the first client that looks like ``candidate``.

    Names must match (case-insensitive) and at least one channel must too:
    email against email, or phone / mobile phone against the client's phone.
    Blank values never match.
    """
    first = _norm(candidate.get("first_name"))
    last = _norm(candidate.get("last_name"))
    if not first or not last:
        return None
    email = _norm(candidate.get("email"))
    phones = {_norm(candidate.get("phone")), _norm(candidate.get("mobile_phone"))} - {""}

    for client in clients:
        if _norm(client.first_name) != first or _norm(client.last_name) != last:
            continue
        if email and _norm(client.email) == email:
            return client
        if phones and _norm(client.phone) in phones:
            return client
    return None


def _require_transaction(storage, transaction_id):
    transaction = storage.get_transaction(transaction_id)
    if transaction is None:
        raise NotFoundError("Transaction not found")
    return transaction


def propose_contact(storage, transaction_id, candidate):
    transaction = _require_transaction(storage, transaction_id)
    return find_duplicate(storage.list_clients(transaction.agent_id), candidate)


def create_contact(storage, transaction_id, candidate, resolution="check", client_id=None):
    """Create a contact, resolving clashes with the agent's client directory.

    ``check`` refuses with ``DuplicateContactError`` when a matching client
    exists, ``new`` creates the candidate as given and ``existing`` copies
    the personal fields of ``client_id`` while keeping the candidate's role.
    """
    transaction = _require_transaction(storage, transaction_id)
    fields = {key: candidate.get(key) for key in CONTACT_FIELDS}

    if resolution == "existing":
        client = storage.get_client(client_id)
        if client is None or client.agent_id != transaction.agent_id:
            raise NotFoundError("Client not found")
        for key in ("first_name", "last_name", "email", "phone"):
            fields[key] = getattr(client, key)
        fields["client_id"] = client.id
    elif resolution == "check":
        duplicate = find_duplicate(storage.list_clients(transaction.agent_id), fields)
        if duplicate is not None:
            raise DuplicateContactError(duplicate)
    elif resolution != "new":
        raise ValidationFailure(
            "Validation failed",
            details=[{"field": "resolution", "message": "Must be check, new or existing"}],
        )

    fields["transaction_id"] = transaction.id
    return storage.create_contact(fields)


def list_contacts(storage, transaction_id):
    transaction = _require_transaction(storage, transaction_id)
    return storage.list_contacts(transaction.id)


def _require_contact(storage, transaction_id, contact_id):
    contact = storage.get_contact(contact_id)
    if contact is None or contact.transaction_id != transaction_id:
        raise NotFoundError("Contact not found")
    return contact


def update_contact(storage, transaction_id, contact_id, changes):
    contact = _require_contact(storage, transaction_id, contact_id)
    fields = {key: value for key, value in changes.items() if key in CONTACT_FIELDS}
    for required, label in (("first_name", "firstName"), ("last_name", "lastName"), ("role", "role")):
        if required in fields and not fields[required]:
            raise ValidationFailure(
                "Validation failed",
                details=[{"field": label, "message": "Cannot be empty"}],
            )
    if not fields:
        return contact
    return storage.update_contact(contact.id, fields)


def delete_contact(storage, transaction_id, contact_id):
    contact = _require_contact(storage, transaction_id, contact_id)
    storage.delete_contact(contact.id)
    return contact


def list_contacts_for_user(storage, user):
    """Contacts across every transaction ``user`` can see, with its address."""
    rows = []
    for transaction in visible_transactions(storage, user):
        for contact in storage.list_contacts(transaction.id):
            data = contact.to_dict()
            data["transactionAddress"] = transaction.address
            rows.append(data)
    return rows
