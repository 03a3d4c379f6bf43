import uuid

from keystone_app import db
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


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(120), nullable=False)
    last_name = db.Column(db.String(120), nullable=False)
    role = db.Column(db.String(40), nullable=False, default="client")
    agent_id = db.Column(db.Integer, nullable=True)
    claimed_transaction_id = db.Column(db.Integer, nullable=True)
    claimed_access_code = db.Column(db.String(64), nullable=True)
    active = db.Column(db.Boolean, default=True)
    session_token = db.Column(
        db.String(36),
        nullable=True,
        default=lambda: str(uuid.uuid4()),
    )
    calendar_token = db.Column(
        db.String(36),
        nullable=True,
        default=lambda: uuid.uuid4().hex,
    )

    def to_record(self):
        return UserRecord(
            id=self.id,
            email=self.email,
            password=self.password,
            first_name=self.first_name,
            last_name=self.last_name,
            role=self.role,
            agent_id=self.agent_id,
            claimed_transaction_id=self.claimed_transaction_id,
            claimed_access_code=self.claimed_access_code,
            session_token=self.session_token,
            calendar_token=self.calendar_token,
            active=bool(self.active) if self.active is not None else True,
        )


class Client(db.Model):
    __tablename__ = "clients"

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(120), nullable=False)
    last_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    type = db.Column(db.String(20), nullable=False, default="buyer")
    status = db.Column(db.String(20), nullable=False, default="active")
    notes = db.Column(db.Text, nullable=True)
    labels = db.Column(db.JSON, nullable=False, default=list)
    agent_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_record(self):
        return ClientRecord(
            id=self.id,
            agent_id=self.agent_id,
            first_name=self.first_name,
            last_name=self.last_name,
            type=self.type,
            status=self.status,
            email=self.email,
            phone=self.phone,
            address=self.address,
            notes=self.notes,
            labels=list(self.labels or []),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class Transaction(db.Model):
    __tablename__ = "transactions"

    id = db.Column(db.Integer, primary_key=True)
    street_name = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(120), nullable=False)
    state = db.Column(db.String(60), nullable=False)
    zip_code = db.Column(db.String(20), nullable=False)
    access_code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    status = db.Column(db.String(40), nullable=False, default="prospect")
    type = db.Column(db.String(10), nullable=False, default="buy")
    agent_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=True)
    participants = db.Column(db.JSON, nullable=False, default=list)
    contract_price = db.Column(db.Integer, nullable=True)
    commission = db.Column(db.Float, nullable=True)
    earnest_money = db.Column(db.Integer, nullable=True)
    option_fee = db.Column(db.Integer, nullable=True)
    down_payment = db.Column(db.Integer, nullable=True)
    seller_concessions = db.Column(db.Integer, nullable=True)
    contract_execution_date = db.Column(db.DateTime, nullable=True)
    option_period_expiration = db.Column(db.DateTime, nullable=True)
    closing_date = db.Column(db.DateTime, nullable=True)
    mls_number = db.Column(db.String(40), nullable=True)
    financing = db.Column(db.String(60), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    checklists = db.relationship(
        "Checklist",
        back_populates="transaction",
        cascade="all, delete-orphan",
    )
    documents = db.relationship(
        "Document",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="Document.id",
    )
    contacts = db.relationship(
        "Contact",
        back_populates="transaction",
        cascade="all, delete-orphan",
    )
    messages = db.relationship(
        "Message",
        back_populates="transaction",
        cascade="all, delete-orphan",
    )

    def to_record(self):
        return TransactionRecord(
            id=self.id,
            agent_id=self.agent_id,
            street_name=self.street_name,
            city=self.city,
            state=self.state,
            zip_code=self.zip_code,
            access_code=self.access_code,
            status=self.status,
            type=self.type,
            client_id=self.client_id,
            participants=[dict(p) for p in self.participants or []],
            contract_price=self.contract_price,
            commission=self.commission,
            earnest_money=self.earnest_money,
            option_fee=self.option_fee,
            down_payment=self.down_payment,
            seller_concessions=self.seller_concessions,
            contract_execution_date=self.contract_execution_date,
            option_period_expiration=self.option_period_expiration,
            closing_date=self.closing_date,
            mls_number=self.mls_number,
            financing=self.financing,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class Checklist(db.Model):
    __tablename__ = "checklists"

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(
        db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True
    )
    role = db.Column(db.String(10), nullable=False)
    items = db.Column(db.JSON, nullable=False, default=list)

    transaction = db.relationship("Transaction", back_populates="checklists")

    __table_args__ = (
        db.UniqueConstraint("transaction_id", "role", name="uq_checklist_transaction_role"),
    )

    def to_record(self):
        return ChecklistRecord(
            id=self.id,
            transaction_id=self.transaction_id,
            role=self.role,
            items=[dict(item) for item in self.items or []],
        )


class Document(db.Model):
    __tablename__ = "documents"

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(
        db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True
    )
    code = db.Column(db.String(80), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(30), nullable=False, default="not_applicable")
    deadline = db.Column(db.Date, nullable=True)
    deadline_time = db.Column(db.String(5), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    transaction = db.relationship("Transaction", back_populates="documents")

    __table_args__ = (
        db.UniqueConstraint("transaction_id", "code", name="uq_document_transaction_code"),
    )

    def to_record(self):
        return DocumentRecord(
            id=self.id,
            transaction_id=self.transaction_id,
            code=self.code,
            name=self.name,
            status=self.status,
            deadline=self.deadline,
            deadline_time=self.deadline_time,
            notes=self.notes,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class Contact(db.Model):
    __tablename__ = "contacts"

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(
        db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True
    )
    role = db.Column(db.String(60), nullable=False)
    first_name = db.Column(db.String(120), nullable=False)
    last_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    mobile_phone = db.Column(db.String(50), nullable=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=True)

    transaction = db.relationship("Transaction", back_populates="contacts")

    def to_record(self):
        return ContactRecord(
            id=self.id,
            transaction_id=self.transaction_id,
            role=self.role,
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            phone=self.phone,
            mobile_phone=self.mobile_phone,
            client_id=self.client_id,
        )


class Message(db.Model):
    __tablename__ = "messages"

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(
        db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True
    )
    user_id = db.Column(db.Integer, nullable=False)
    username = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(40), nullable=False)
    content = db.Column(db.Text, nullable=False)
    timestamp = db.Column(db.String(40), nullable=False)

    transaction = db.relationship("Transaction", back_populates="messages")

    def to_record(self):
        return MessageRecord(
            id=self.id,
            transaction_id=self.transaction_id,
            user_id=self.user_id,
            username=self.username,
            role=self.role,
            content=self.content,
            timestamp=self.timestamp,
        )


class PrivateMessage(db.Model):
    __tablename__ = "private_messages"

    id = db.Column(db.Integer, primary_key=True)
    sender_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    recipient_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    timestamp = db.Column(db.String(40), nullable=False)
    read = db.Column(db.Boolean, nullable=False, default=False)

    def to_record(self):
        return PrivateMessageRecord(
            id=self.id,
            sender_id=self.sender_id,
            recipient_id=self.recipient_id,
            content=self.content,
            timestamp=self.timestamp,
            read=bool(self.read),
        )


def apply_fields(instance, fields):
    for key, value in fields.items():
        if not hasattr(instance, key):
            raise AttributeError(f"{type(instance).__name__} has no field {key!r}")
        setattr(instance, key, value)
    return instance
