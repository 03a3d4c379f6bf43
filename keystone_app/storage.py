"""Storage backends.

Services receive a ``Storage`` instance explicitly and only ever see the
dataclass records from :mod:`keystone_app.records`. ``MemStorage`` keeps
everything in process memory (tests and demos); ``DatabaseStorage`` is backed
by the Flask-SQLAlchemy models.
"""

import abc
import copy
import dataclasses
import itertools
from typing import Any, Dict, Iterable, List, Optional

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from keystone_app.errors import ChecklistConflict, DocumentConflict, NotFoundError
from keystone_app.records import (
    ChecklistRecord,
    ClientRecord,
    ContactRecord,
    DocumentRecord,
    MessageRecord,
    PrivateMessageRecord,
    TransactionRecord,
    UserRecord,
    utcnow,
)

EXTENSION_KEY = "keystone_storage"


def get_storage():
    return current_app.extensions[EXTENSION_KEY]


class Storage(abc.ABC):
    """Repository interface shared by every backend."""

    # users
    @abc.abstractmethod
    def get_user(self, user_id) -> Optional[UserRecord]: ...

    @abc.abstractmethod
    def get_user_by_email(self, email) -> Optional[UserRecord]: ...

    @abc.abstractmethod
    def list_users(self, user_ids: Iterable[int]) -> List[UserRecord]: ...

    @abc.abstractmethod
    def create_user(self, fields: Dict[str, Any]) -> UserRecord: ...

    @abc.abstractmethod
    def update_user(self, user_id, fields: Dict[str, Any]) -> UserRecord: ...

    # clients
    @abc.abstractmethod
    def list_clients(self, agent_id) -> List[ClientRecord]: ...

    @abc.abstractmethod
    def get_client(self, client_id) -> Optional[ClientRecord]: ...

    @abc.abstractmethod
    def create_client(self, fields: Dict[str, Any]) -> ClientRecord: ...

    @abc.abstractmethod
    def create_clients(self, rows: List[Dict[str, Any]]) -> List[ClientRecord]:
        """Insert every row or none of them."""

    @abc.abstractmethod
    def update_client(self, client_id, fields: Dict[str, Any]) -> ClientRecord: ...

    @abc.abstractmethod
    def delete_client(self, client_id) -> None:
        """Delete a client and detach it from transactions and contacts."""

    # transactions
    @abc.abstractmethod
    def list_transactions(self, agent_id) -> List[TransactionRecord]: ...

    @abc.abstractmethod
    def list_participating_transactions(self, user_id) -> List[TransactionRecord]: ...

    @abc.abstractmethod
    def get_transaction(self, transaction_id) -> Optional[TransactionRecord]: ...

    @abc.abstractmethod
    def get_transaction_by_access_code(self, access_code) -> Optional[TransactionRecord]: ...

    @abc.abstractmethod
    def create_transaction(self, fields: Dict[str, Any]) -> TransactionRecord: ...

    @abc.abstractmethod
    def update_transaction(self, transaction_id, fields: Dict[str, Any]) -> TransactionRecord: ...

    @abc.abstractmethod
    def add_participant(self, transaction_id, user_id, role) -> TransactionRecord: ...

    @abc.abstractmethod
    def delete_transaction(self, transaction_id) -> None:
        """Delete a transaction together with everything that hangs off it."""

    # checklists
    @abc.abstractmethod
    def get_checklist(self, transaction_id, role) -> Optional[ChecklistRecord]: ...

    @abc.abstractmethod
    def create_checklist(self, transaction_id, role, items) -> ChecklistRecord:
        """Raise ``ChecklistConflict`` when the (transaction, role) pair exists."""

    @abc.abstractmethod
    def save_checklist_items(self, checklist_id, items) -> ChecklistRecord: ...

    # documents
    @abc.abstractmethod
    def list_documents(self, transaction_ids: Iterable[int]) -> List[DocumentRecord]: ...

    @abc.abstractmethod
    def get_document(self, document_id) -> Optional[DocumentRecord]: ...

    @abc.abstractmethod
    def create_documents(self, transaction_id, rows: List[Dict[str, Any]]) -> List[DocumentRecord]:
        """Raise ``DocumentConflict`` when a code is already used by the transaction."""

    @abc.abstractmethod
    def update_document(self, document_id, fields: Dict[str, Any]) -> DocumentRecord: ...

    @abc.abstractmethod
    def delete_document(self, document_id) -> None: ...

    # contacts
    @abc.abstractmethod
    def list_contacts(self, transaction_id) -> List[ContactRecord]: ...

    @abc.abstractmethod
    def get_contact(self, contact_id) -> Optional[ContactRecord]: ...

    @abc.abstractmethod
    def create_contact(self, fields: Dict[str, Any]) -> ContactRecord: ...

    @abc.abstractmethod
    def update_contact(self, contact_id, fields: Dict[str, Any]) -> ContactRecord: ...

    @abc.abstractmethod
    def delete_contact(self, contact_id) -> None: ...

    # transaction chat
    @abc.abstractmethod
    def list_messages(self, transaction_id) -> List[MessageRecord]: ...

    @abc.abstractmethod
    def create_message(self, fields: Dict[str, Any]) -> MessageRecord: ...

    # inbox
    @abc.abstractmethod
    def list_private_messages(self, user_id) -> List[PrivateMessageRecord]: ...

    @abc.abstractmethod
    def get_private_message(self, message_id) -> Optional[PrivateMessageRecord]: ...

    @abc.abstractmethod
    def create_private_message(self, fields: Dict[str, Any]) -> PrivateMessageRecord: ...

    @abc.abstractmethod
    def mark_private_message_read(self, message_id) -> PrivateMessageRecord: ...


def _message_order(record):
    return (record.timestamp, record.id)


class MemStorage(Storage):
    """Dictionary-backed storage. Every read returns a copy."""

    def __init__(self):
        self._tables = {
            name: {}
            for name in (
                "users",
                "clients",
                "transactions",
                "checklists",
                "documents",
                "contacts",
                "messages",
                "private_messages",
            )
        }
        self._ids = {name: itertools.count(1) for name in self._tables}

    # helpers ---------------------------------------------------------------
    def _insert(self, table, record_cls, fields):
        now = utcnow()
        values = copy.deepcopy(dict(fields))
        names = {f.name for f in dataclasses.fields(record_cls)}
        for stamp in ("created_at", "updated_at"):
            if stamp in names and values.get(stamp) is None:
                values[stamp] = now
        values["id"] = next(self._ids[table])
        record = record_cls(**values)
        self._tables[table][record.id] = record
        return copy.deepcopy(record)

    def _fetch(self, table, record_id):
        record = self._tables[table].get(record_id)
        return copy.deepcopy(record) if record is not None else None

    def _require(self, table, record_id):
        record = self._tables[table].get(record_id)
        if record is None:
            raise NotFoundError(f"{table.rstrip('s').replace('_', ' ').capitalize()} not found")
        return record

    def _update(self, table, record_id, fields):
        record = self._require(table, record_id)
        names = {f.name for f in dataclasses.fields(record)}
        for key, value in fields.items():
            if key not in names or key == "id":
                raise AttributeError(f"{type(record).__name__} has no field {key!r}")
            setattr(record, key, copy.deepcopy(value))
        if "updated_at" in names:
            record.updated_at = utcnow()
        return copy.deepcopy(record)

    def _select(self, table, predicate):
        rows = [r for r in self._tables[table].values() if predicate(r)]
        return [copy.deepcopy(r) for r in sorted(rows, key=lambda r: r.id)]

    # users -----------------------------------------------------------------
    def get_user(self, user_id):
        return self._fetch("users", user_id)

    def get_user_by_email(self, email):
        needle = (email or "").strip().lower()
        for user in self._tables["users"].values():
            if user.email.lower() == needle:
                return copy.deepcopy(user)
        return None

    def list_users(self, user_ids):
        wanted = set(user_ids)
        return self._select("users", lambda u: u.id in wanted)

    def create_user(self, fields):
        return self._insert("users", UserRecord, fields)

    def update_user(self, user_id, fields):
        return self._update("users", user_id, fields)

    # clients ---------------------------------------------------------------
    def list_clients(self, agent_id):
        return self._select("clients", lambda c: c.agent_id == agent_id)

    def get_client(self, client_id):
        return self._fetch("clients", client_id)

    def create_client(self, fields):
        return self._insert("clients", ClientRecord, fields)

    def create_clients(self, rows):
        # Build every record before touching the table so a bad row inserts nothing.
        for row in rows:
            ClientRecord(id=0, **row)
        return [self.create_client(row) for row in rows]

    def update_client(self, client_id, fields):
        return self._update("clients", client_id, fields)

    def delete_client(self, client_id):
        self._require("clients", client_id)
        for transaction in self._tables["transactions"].values():
            if transaction.client_id == client_id:
                transaction.client_id = None
        for contact in self._tables["contacts"].values():
            if contact.client_id == client_id:
                contact.client_id = None
        del self._tables["clients"][client_id]

    # transactions ----------------------------------------------------------
    def list_transactions(self, agent_id):
        return self._select("transactions", lambda t: t.agent_id == agent_id)

    def list_participating_transactions(self, user_id):
        return self._select("transactions", lambda t: t.has_participant(user_id))

    def get_transaction(self, transaction_id):
        return self._fetch("transactions", transaction_id)

    def get_transaction_by_access_code(self, access_code):
        for transaction in self._tables["transactions"].values():
            if transaction.access_code == access_code:
                return copy.deepcopy(transaction)
        return None

    def create_transaction(self, fields):
        return self._insert("transactions", TransactionRecord, fields)

    def update_transaction(self, transaction_id, fields):
        return self._update("transactions", transaction_id, fields)

    def add_participant(self, transaction_id, user_id, role):
        transaction = self._require("transactions", transaction_id)
        if not transaction.has_participant(user_id):
            transaction.participants = transaction.participants + [
                {"userId": user_id, "role": role}
            ]
            transaction.updated_at = utcnow()
        return copy.deepcopy(transaction)

    def delete_transaction(self, transaction_id):
        self._require("transactions", transaction_id)
        for table in ("checklists", "documents", "contacts", "messages"):
            rows = self._tables[table]
            for record_id in [k for k, r in rows.items() if r.transaction_id == transaction_id]:
                del rows[record_id]
        for user in self._tables["users"].values():
            if user.claimed_transaction_id == transaction_id:
                user.claimed_transaction_id = None
                user.claimed_access_code = None
        del self._tables["transactions"][transaction_id]

    # checklists ------------------------------------------------------------
    def get_checklist(self, transaction_id, role):
        for checklist in self._tables["checklists"].values():
            if checklist.transaction_id == transaction_id and checklist.role == role:
                return copy.deepcopy(checklist)
        return None

    def create_checklist(self, transaction_id, role, items):
        if self.get_checklist(transaction_id, role) is not None:
            raise ChecklistConflict()
        return self._insert(
            "checklists",
            ChecklistRecord,
            {"transaction_id": transaction_id, "role": role, "items": copy.deepcopy(items)},
        )

    def save_checklist_items(self, checklist_id, items):
        return self._update("checklists", checklist_id, {"items": items})

    # documents -------------------------------------------------------------
    def list_documents(self, transaction_ids):
        wanted = set(transaction_ids)
        return self._select("documents", lambda d: d.transaction_id in wanted)

    def get_document(self, document_id):
        return self._fetch("documents", document_id)

    def create_documents(self, transaction_id, rows):
        taken = {doc.code for doc in self.list_documents([transaction_id])}
        codes = [row["code"] for row in rows]
        if len(set(codes)) != len(codes) or taken.intersection(codes):
            raise DocumentConflict()
        return [
            self._insert(
                "documents", DocumentRecord, dict(row, transaction_id=transaction_id)
            )
            for row in rows
        ]

    def update_document(self, document_id, fields):
        return self._update("documents", document_id, fields)

    def delete_document(self, document_id):
        self._require("documents", document_id)
        del self._tables["documents"][document_id]

    # contacts --------------------------------------------------------------
    def list_contacts(self, transaction_id):
        return self._select("contacts", lambda c: c.transaction_id == transaction_id)

    def get_contact(self, contact_id):
        return self._fetch("contacts", contact_id)

    def create_contact(self, fields):
        return self._insert("contacts", ContactRecord, fields)

    def update_contact(self, contact_id, fields):
        return self._update("contacts", contact_id, fields)

    def delete_contact(self, contact_id):
        self._require("contacts", contact_id)
        del self._tables["contacts"][contact_id]

    # messages --------------------------------------------------------------
    def list_messages(self, transaction_id):
        rows = [
            m for m in self._tables["messages"].values() if m.transaction_id == transaction_id
        ]
        return [copy.deepcopy(m) for m in sorted(rows, key=_message_order)]

    def create_message(self, fields):
        return self._insert("messages", MessageRecord, fields)

    def list_private_messages(self, user_id):
        rows = [
            m
            for m in self._tables["private_messages"].values()
            if user_id in (m.sender_id, m.recipient_id)
        ]
        return [copy.deepcopy(m) for m in sorted(rows, key=_message_order)]

    def get_private_message(self, message_id):
        return self._fetch("private_messages", message_id)

    def create_private_message(self, fields):
        return self._insert("private_messages", PrivateMessageRecord, fields)

    def mark_private_message_read(self, message_id):
        return self._update("private_messages", message_id, {"read": True})


class DatabaseStorage(Storage):
    """Storage backed by the Flask-SQLAlchemy models.

    Must be used inside an application context.
    """

    def __init__(self, db):
        self.db = db

    @property
    def session(self):
        return self.db.session

    def _models(self):
        from keystone_app import models

        return models

    def _commit(self):
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def _require(self, model, record_id, label):
        instance = self.session.get(model, record_id)
        if instance is None:
            raise NotFoundError(f"{label} not found")
        return instance

    def _save(self, instance):
        self.session.add(instance)
        self._commit()
        return instance.to_record()

    def _update(self, model, record_id, label, fields):
        models = self._models()
        instance = self._require(model, record_id, label)
        if "id" in fields:
            raise AttributeError(f"{model.__name__} id is read-only")
        models.apply_fields(instance, copy.deepcopy(fields))
        if hasattr(instance, "updated_at"):
            instance.updated_at = utcnow()
        self._commit()
        return instance.to_record()

    def _delete(self, model, record_id, label):
        instance = self._require(model, record_id, label)
        self.session.delete(instance)
        self._commit()

    # users -----------------------------------------------------------------
    def get_user(self, user_id):
        instance = self.session.get(self._models().User, user_id)
        return instance.to_record() if instance else None

    def get_user_by_email(self, email):
        User = self._models().User
        needle = (email or "").strip().lower()
        instance = User.query.filter(func.lower(User.email) == needle).first()
        return instance.to_record() if instance else None

    def list_users(self, user_ids):
        User = self._models().User
        ids = list(set(user_ids))
        if not ids:
            return []
        return [u.to_record() for u in User.query.filter(User.id.in_(ids)).order_by(User.id)]

    def create_user(self, fields):
        return self._save(self._models().User(**fields))

    def update_user(self, user_id, fields):
        return self._update(self._models().User, user_id, "User", fields)

    # clients ---------------------------------------------------------------
    def list_clients(self, agent_id):
        Client = self._models().Client
        query = Client.query.filter_by(agent_id=agent_id).order_by(Client.id)
        return [c.to_record() for c in query]

    def get_client(self, client_id):
        instance = self.session.get(self._models().Client, client_id)
        return instance.to_record() if instance else None

    def create_client(self, fields):
        return self._save(self._models().Client(**fields))

    def create_clients(self, rows):
        Client = self._models().Client
        instances = [Client(**row) for row in rows]
        self.session.add_all(instances)
        self._commit()
        return [c.to_record() for c in instances]

    def update_client(self, client_id, fields):
        return self._update(self._models().Client, client_id, "Client", fields)

    def delete_client(self, client_id):
        models = self._models()
        instance = self._require(models.Client, client_id, "Client")
        models.Transaction.query.filter_by(client_id=client_id).update(
            {"client_id": None}, synchronize_session=False
        )
        models.Contact.query.filter_by(client_id=client_id).update(
            {"client_id": None}, synchronize_session=False
        )
        self.session.delete(instance)
        self._commit()

    # transactions ----------------------------------------------------------
    def list_transactions(self, agent_id):
        Transaction = self._models().Transaction
        query = Transaction.query.filter_by(agent_id=agent_id).order_by(Transaction.id)
        return [t.to_record() for t in query]

    def list_participating_transactions(self, user_id):
        # participants is a JSON list; filter after loading
        Transaction = self._models().Transaction
        records = [t.to_record() for t in Transaction.query.order_by(Transaction.id)]
        return [r for r in records if r.has_participant(user_id)]

    def get_transaction(self, transaction_id):
        instance = self.session.get(self._models().Transaction, transaction_id)
        return instance.to_record() if instance else None

    def get_transaction_by_access_code(self, access_code):
        Transaction = self._models().Transaction
        instance = Transaction.query.filter_by(access_code=access_code).first()
        return instance.to_record() if instance else None

    def create_transaction(self, fields):
        values = dict(fields)
        values["participants"] = copy.deepcopy(values.get("participants") or [])
        return self._save(self._models().Transaction(**values))

    def update_transaction(self, transaction_id, fields):
        return self._update(
            self._models().Transaction, transaction_id, "Transaction", fields
        )

    def add_participant(self, transaction_id, user_id, role):
        instance = self._require(self._models().Transaction, transaction_id, "Transaction")
        participants = copy.deepcopy(instance.participants or [])
        if all(p.get("userId") != user_id for p in participants):
            participants.append({"userId": user_id, "role": role})
            instance.participants = participants
            instance.updated_at = utcnow()
            self._commit()
        return instance.to_record()

    def delete_transaction(self, transaction_id):
        models = self._models()
        instance = self._require(models.Transaction, transaction_id, "Transaction")
        models.User.query.filter_by(claimed_transaction_id=transaction_id).update(
            {"claimed_transaction_id": None, "claimed_access_code": None},
            synchronize_session=False,
        )
        self.session.delete(instance)
        self._commit()

    # checklists ------------------------------------------------------------
    def get_checklist(self, transaction_id, role):
        Checklist = self._models().Checklist
        instance = Checklist.query.filter_by(transaction_id=transaction_id, role=role).first()
        return instance.to_record() if instance else None

    def create_checklist(self, transaction_id, role, items):
        Checklist = self._models().Checklist
        instance = Checklist(
            transaction_id=transaction_id, role=role, items=copy.deepcopy(items)
        )
        self.session.add(instance)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ChecklistConflict() from exc
        return instance.to_record()

    def save_checklist_items(self, checklist_id, items):
        return self._update(
            self._models().Checklist, checklist_id, "Checklist", {"items": items}
        )

    # documents -------------------------------------------------------------
    def list_documents(self, transaction_ids):
        Document = self._models().Document
        ids = list(set(transaction_ids))
        if not ids:
            return []
        query = Document.query.filter(Document.transaction_id.in_(ids)).order_by(Document.id)
        return [d.to_record() for d in query]

    def get_document(self, document_id):
        instance = self.session.get(self._models().Document, document_id)
        return instance.to_record() if instance else None

    def create_documents(self, transaction_id, rows):
        Document = self._models().Document
        instances = [Document(transaction_id=transaction_id, **row) for row in rows]
        self.session.add_all(instances)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise DocumentConflict() from exc
        return [d.to_record() for d in instances]

    def update_document(self, document_id, fields):
        return self._update(self._models().Document, document_id, "Document", fields)

    def delete_document(self, document_id):
        self._delete(self._models().Document, document_id, "Document")

    # contacts --------------------------------------------------------------
    def list_contacts(self, transaction_id):
        Contact = self._models().Contact
        query = Contact.query.filter_by(transaction_id=transaction_id).order_by(Contact.id)
        return [c.to_record() for c in query]

    def get_contact(self, contact_id):
        instance = self.session.get(self._models().Contact, contact_id)
        return instance.to_record() if instance else None

    def create_contact(self, fields):
        return self._save(self._models().Contact(**fields))

    def update_contact(self, contact_id, fields):
        return self._update(self._models().Contact, contact_id, "Contact", fields)

    def delete_contact(self, contact_id):
        self._delete(self._models().Contact, contact_id, "Contact")

    # messages --------------------------------------------------------------
    def list_messages(self, transaction_id):
        Message = self._models().Message
        query = Message.query.filter_by(transaction_id=transaction_id).order_by(
            Message.timestamp, Message.id
        )
        return [m.to_record() for m in query]

    def create_message(self, fields):
        return self._save(self._models().Message(**fields))

    def list_private_messages(self, user_id):
        PrivateMessage = self._models().PrivateMessage
        query = PrivateMessage.query.filter(
            or_(
                PrivateMessage.sender_id == user_id,
                PrivateMessage.recipient_id == user_id,
            )
        ).order_by(PrivateMessage.timestamp, PrivateMessage.id)
        return [m.to_record() for m in query]

    def get_private_message(self, message_id):
        instance = self.session.get(self._models().PrivateMessage, message_id)
        return instance.to_record() if instance else None

    def create_private_message(self, fields):
        return self._save(self._models().PrivateMessage(**fields))

    def mark_private_message_read(self, message_id):
        return self._update(
            self._models().PrivateMessage, message_id, "Message", {"read": True}
        )


def build_storage(kind, db=None):
    normalized = (kind or "database").strip().lower()
    if normalized == "memory":
        return MemStorage()
    if normalized == "database":
        return DatabaseStorage(db)
    raise ValueError(f"Unknown storage backend: {kind!r}")
