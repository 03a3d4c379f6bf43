import datetime

from keystone_app.records import utcnow

FEED_TYPES = ("export", "subscribe")
PRODID = "-//Keystone//Transactions//EN"


def transaction_events(transactions):
    """Closing and option-expiration events for the given transactions, by start date."""
    events = []
    for transaction in transactions:
        if transaction.option_period_expiration is not None:
            events.append(
                {
                    "id": f"option-{transaction.id}",
                    "title": f"Option Expiration - {transaction.address}",
                    "start": transaction.option_period_expiration.date().isoformat(),
                    "allDay": True,
                    "type": "option_expiration",
                    "transactionId": transaction.id,
                }
            )
        if transaction.closing_date is not None:
            events.append(
                {
                    "id": f"closing-{transaction.id}",
                    "title": f"Closing - {transaction.address}",
                    "start": transaction.closing_date.date().isoformat(),
                    "allDay": True,
                    "type": "closing",
                    "transactionId": transaction.id,
                }
            )
    events.sort(key=lambda event: (event["start"], event["id"]))
    return events


def ical_escape(text):
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def vevent(event, host="keystone", stamp=None):
    stamp = stamp or utcnow()
    start = datetime.date.fromisoformat(event["start"])
    end = start + datetime.timedelta(days=1)
    return "\r\n".join(
        [
            "BEGIN:VEVENT",
            f"UID:{event['id']}@{host}",
            f"DTSTAMP:{stamp.strftime('%Y%m%dT%H%M%SZ')}",
            f"DTSTART;VALUE=DATE:{start.strftime('%Y%m%d')}",
            f"DTEND;VALUE=DATE:{end.strftime('%Y%m%d')}",
            f"SUMMARY:{ical_escape(event['title'])}",
            "TRANSP:TRANSPARENT",
            "END:VEVENT",
        ]
    )


def build_ical(events, calendar_name="Keystone Transactions", host="keystone"):
    stamp = utcnow()
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        f"X-WR-CALNAME:{ical_escape(calendar_name)}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]
    lines.extend(vevent(event, host=host, stamp=stamp) for event in events)
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"


def feed_headers(feed_type, user_id):
    if feed_type == "export":
        return {
            "Content-Disposition": f'attachment; filename="keystone-{user_id}.ics"',
            "Cache-Control": "no-store",
        }
    return {
        "Content-Disposition": f'inline; filename="keystone-{user_id}.ics"',
        "Cache-Control": "public, max-age=900",
    }
