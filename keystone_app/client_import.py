import csv
import datetime
import re
from dataclasses import dataclass, field
from io import StringIO
from typing import Any, Dict, List

from flask import current_app
from openpyxl import load_workbook
from pydantic import ValidationError

from keystone_app.errors import ValidationFailure
from keystone_app.schemas import ClientPayload, format_errors

HEADER_ALIASES = {
    "firstname": "first_name",
    "first": "first_name",
    "givenname": "first_name",
    "lastname": "last_name",
    "last": "last_name",
    "surname": "last_name",
    "familyname": "last_name",
    "email": "email",
    "emailaddress": "email",
    "phone": "phone",
    "phonenumber": "phone",
    "mobile": "phone",
    "address": "address",
    "streetaddress": "address",
    "type": "type",
    "clienttype": "type",
    "status": "status",
    "clientstatus": "status",
    "notes": "notes",
    "note": "notes",
    "labels": "labels",
    "tags": "labels",
}
REQUIRED_COLUMNS = ("first_name", "last_name")
FIELD_LABELS = {"first_name": "firstName", "last_name": "lastName"}


@dataclass
class ImportOutcome:
    processed_rows: int
    created: List[Any] = field(default_factory=list)
    row_errors: List[Dict[str, Any]] = field(default_factory=list)


def clean_str(value):
    """Turn a spreadsheet cell into a stripped string ("" for empty cells)."""
    if value is None:
        return ""
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.strftime("%Y-%m-%d")
    return str(value).strip()


def stringify_cell(value):
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        value = value.date()
    if isinstance(value, datetime.time):
        return value.strftime("%H:%M")
    if isinstance(value, datetime.date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def normalize_header(value):
    return re.sub(r"[^a-z0-9]", "", clean_str(value).lower())


def parse_csv_text(text):
    rows = list(csv.reader(StringIO(text or "")))
    header = rows[0] if rows else []
    data_rows = rows[1:] if len(rows) > 1 else []
    return header, data_rows


def extract_tabular_upload(upload):
    """Read a ``.csv`` or ``.xlsx`` upload into ``(header, rows)``."""
    filename = (upload.filename or "").lower()
    if filename.endswith(".xlsx"):
        upload.stream.seek(0)
        workbook = load_workbook(upload.stream, read_only=True, data_only=True)
        worksheet = workbook.active
        header = next(
            worksheet.iter_rows(min_row=1, max_row=1, values_only=True),
            (),
        )
        data_rows = [list(row) for row in worksheet.iter_rows(min_row=2, values_only=True)]
        workbook.close()
        return list(header), data_rows

    if filename.endswith(".csv"):
        upload.stream.seek(0)
        raw_bytes = upload.read()
        try:
            text = raw_bytes.decode("utf-8-sig")
        except UnicodeDecodeError:
            text = raw_bytes.decode("latin-1")
        return parse_csv_text(text)

    raise ValidationFailure("Unsupported file type. Upload a .csv or .xlsx file.")


def build_header_map(header):
    header_map = {}
    for index, name in enumerate(header):
        target = HEADER_ALIASES.get(normalize_header(name))
        if target and target not in header_map:
            header_map[target] = index
    missing = [FIELD_LABELS[name] for name in REQUIRED_COLUMNS if name not in header_map]
    if missing:
        raise ValidationFailure(
            "Missing required columns",
            details=[{"row": 0, "field": name, "message": "Column is required"} for name in missing],
        )
    return header_map


def _row_values(row, header_map):
    values = {}
    for name, index in header_map.items():
        cell = row[index] if index < len(row) else None
        values[name] = stringify_cell(cell)
    return values


def validate_rows(header, data_rows):
    """Validate every data row; returns ``(valid, errors)``.

    Row numbers are 1-based over the data rows, so the first row under the
    header is row 1. Rows with no values at all are skipped.
    """
    header_map = build_header_map(header)
    valid = []
    errors = []
    for row_number, row in enumerate(data_rows, start=1):
        values = _row_values(row, header_map)
        if not any(values.values()):
            continue
        try:
            payload = ClientPayload.model_validate(values)
        except ValidationError as exc:
            for detail in format_errors(exc):
                field_name = detail["field"]
                errors.append(
                    {
                        "row": row_number,
                        "field": FIELD_LABELS.get(field_name, field_name),
                        "message": detail["message"],
                    }
                )
            continue
        valid.append((row_number, payload.model_dump()))
    return valid, errors


def import_clients(storage, agent_id, header, data_rows, skip_invalid=False):
    """Insert the clients described by a tabular upload.

    The import is all-or-nothing: any invalid row rejects the whole file
    unless ``skip_invalid`` is set, in which case only valid rows are kept
    and the rejected ones are reported back.
    """
    valid, errors = validate_rows(header, data_rows)
    processed = len(valid) + len({error["row"] for error in errors})

    if errors and not skip_invalid:
        current_app.logger.info(
            "Client import for agent %s rejected: %s invalid rows",
            agent_id,
            len({error["row"] for error in errors}),
        )
        raise ValidationFailure("Import failed; no clients were created", details=errors)
    if not valid and not errors:
        raise ValidationFailure("The file has no client rows")

    created = []
    if valid:
        created = storage.create_clients(
            [dict(values, agent_id=agent_id) for _row, values in valid]
        )
    current_app.logger.info(
        "Client import for agent %s: %s created, %s rejected",
        agent_id,
        len(created),
        len({error["row"] for error in errors}),
    )
    return ImportOutcome(
        processed_rows=processed,
        created=created,
        row_errors=errors,
    )
