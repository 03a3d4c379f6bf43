from keystone_app.errors import ForbiddenError, NotFoundError
from keystone_app.pipeline import visible_transactions
from keystone_app.records import message_timestamp


def list_thread(storage, transaction_id):
    return storage.list_messages(transaction_id)


def post_message(storage, user, transaction_id, content):
    return storage.create_message(
        {
            "transaction_id": transaction_id,
            "user_id": user.id,
            "username": user.display_name,
            "role": user.role,
            "content": content,
            "timestamp": message_timestamp(),
        }
    )


def recipient_ids(storage, user):
    """Ids of the users who share at least one transaction with ``user``.

    Agents reach the participants of their transactions; everyone else
    reaches the agents of the transactions they joined.
    """
    ids = set()
    for transaction in visible_transactions(storage, user):
        if user.is_agent:
            ids.update(transaction.participant_ids)
        else:
            ids.add(transaction.agent_id)
    ids.discard(user.id)
    ids.discard(None)
    return ids


def list_recipients(storage, user):
    return storage.list_users(recipient_ids(storage, user))


def inbox(storage, user):
    return storage.list_private_messages(user.id)


def send_private_message(storage, user, recipient_id, content):
    recipient = storage.get_user(recipient_id)
    if recipient is None:
        raise NotFoundError("Recipient not found")
    if recipient.id not in recipient_ids(storage, user):
        raise ForbiddenError("You can only message people you share a transaction with")
    return storage.create_private_message(
        {
            "sender_id": user.id,
            "recipient_id": recipient.id,
            "content": content,
            "timestamp": message_timestamp(),
            "read": False,
        }
    )


def mark_read(storage, user, message_id):
    message = storage.get_private_message(message_id)
    if message is None:
        raise NotFoundError("Message not found")
    if message.recipient_id != user.id:
        raise ForbiddenError("Only the recipient can mark a message as read")
    if message.read:
        return message
    return storage.mark_private_message_read(message.id)
