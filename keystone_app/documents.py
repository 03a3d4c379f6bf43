import re

from flask import current_app

from keystone_app.checklists import progress_percent
from keystone_app.errors import DocumentConflict, NotFoundError, ValidationFailure
from keystone_app.templates import (
    DEFAULT_DOCUMENT_STATUS,
    DEFAULT_DOCUMENTS,
    DOCUMENT_STATUS_LABELS,
    DOCUMENT_STATUSES,
)

EDITABLE_FIELDS = ("name", "status", "deadline", "deadline_time", "notes")


def normalize_document_status(value):
    normalized = re.sub(r"[\s\-]+", "_", str(value or "").strip().lower())
    if normalized not in DOCUMENT_STATUSES:
        raise ValidationFailure(
            "Invalid document status",
            details=[
                {
                    "field": "status",
                    "message": f"Must be one of: {', '.join(DOCUMENT_STATUSES)}",
                }
            ],
        )
    return normalized


def slugify(name):
    return re.sub(r"[^a-z0-9]+", "_", (name or "").lower()).strip("_") or "document"


def _unique_code(name, taken):
    base = slugify(name)
    code = base
    suffix = 2
    while code in taken:
        code = f"{base}_{suffix}"
        suffix += 1
    return code


def _require_transaction(storage, transaction_id):
    transaction = storage.get_transaction(transaction_id)
    if transaction is None:
        raise NotFoundError("Transaction not found")
    return transaction


def _seed(storage, transaction_id, existing):
    taken = {doc.code for doc in existing}
    rows = [
        {"code": code, "name": name, "status": DEFAULT_DOCUMENT_STATUS}
        for code, name in DEFAULT_DOCUMENTS
        if code not in taken
    ]
    if not rows:
        return existing
    try:
        created = storage.create_documents(transaction_id, rows)
    except DocumentConflict:
        # another request seeded first
        current_app.logger.info(
            "Default documents for transaction %s were seeded concurrently", transaction_id
        )
        return storage.list_documents([transaction_id])
    current_app.logger.info(
        "Seeded %s default documents for transaction %s", len(created), transaction_id
    )
    return existing + created


def list_documents(storage, transaction_id):
    """Documents for a transaction; the defaults are seeded when it has none."""
    transaction = _require_transaction(storage, transaction_id)
    documents = storage.list_documents([transaction.id])
    if documents:
        return documents
    return _seed(storage, transaction.id, [])


def initialize_documents(storage, transaction_id):
    """Add any default document the transaction is missing. Safe to repeat."""
    transaction = _require_transaction(storage, transaction_id)
    return _seed(storage, transaction.id, storage.list_documents([transaction.id]))


def resolve_document(storage, transaction_id, document_ref):
    """Find a document of this transaction by numeric id or by code."""
    _require_transaction(storage, transaction_id)
    ref = str(document_ref).strip()
    if ref.isdigit():
        document = storage.get_document(int(ref))
        if document is not None and document.transaction_id == transaction_id:
            return document
    for document in storage.list_documents([transaction_id]):
        if document.code == ref:
            return document
    raise NotFoundError("Document not found")


def add_document(
    storage,
    transaction_id,
    name,
    status=None,
    deadline=None,
    deadline_time=None,
    notes=None,
):
    _require_transaction(storage, transaction_id)
    name = (name or "").strip()
    if not name:
        raise ValidationFailure(
            "Validation failed", details=[{"field": "name", "message": "Name is required"}]
        )
    status = normalize_document_status(status) if status else DEFAULT_DOCUMENT_STATUS
    taken = {doc.code for doc in storage.list_documents([transaction_id])}
    (document,) = storage.create_documents(
        transaction_id,
        [
            {
                "code": _unique_code(name, taken),
                "name": name,
                "status": status,
                "deadline": deadline,
                "deadline_time": deadline_time,
                "notes": notes,
            }
        ],
    )
    return document


def update_document(storage, transaction_id, document_ref, changes):
    document = resolve_document(storage, transaction_id, document_ref)
    fields = {key: value for key, value in changes.items() if key in EDITABLE_FIELDS}
    if "status" in fields:
        fields["status"] = normalize_document_status(fields["status"])
    if "name" in fields and not (fields["name"] or "").strip():
        raise ValidationFailure(
            "Validation failed", details=[{"field": "name", "message": "Name is required"}]
        )
    if not fields:
        return document
    return storage.update_document(document.id, fields)


def set_status(storage, transaction_id, document_ref, status):
    """Move a document to another status column.

    An invalid status raises before anything is written, so the document
    keeps its previous status.
    """
    normalized = normalize_document_status(status)
    document = resolve_document(storage, transaction_id, document_ref)
    if document.status == normalized:
        return document
    return storage.update_document(document.id, {"status": normalized})


def remove_document(storage, transaction_id, document_ref):
    document = resolve_document(storage, transaction_id, document_ref)
    storage.delete_document(document.id)
    return document


def document_progress(documents):
    complete = sum(1 for doc in documents if doc.status == "complete")
    return progress_percent(complete, len(documents))


def document_board(documents):
    columns = []
    for status in DOCUMENT_STATUSES:
        columns.append(
            {
                "id": status,
                "title": DOCUMENT_STATUS_LABELS[status],
                "documents": [doc.to_dict() for doc in documents if doc.status == status],
            }
        )
    return {"columns": columns, "progress": document_progress(documents)}


def list_documents_for_agent(storage, agent_id):
    transactions = {t.id: t for t in storage.list_transactions(agent_id)}
    rows = []
    for document in storage.list_documents(transactions.keys()):
        data = document.to_dict()
        data["transactionAddress"] = transactions[document.transaction_id].address
        rows.append(data)
    return rows
