"""
CSV import / export for entity lists, and merging imported rows into
existing data.
"""

import csv
import inspect
import io
import json
import logging
import math
import random
import string
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

ID_ALPHABET = string.digits + string.ascii_lowercase

Record = Dict[str, Any]


@dataclass
class CsvExport:
    filename: str
    content: str


def generate_id() -> str:
    """Millisecond timestamp followed by nine random base-36 characters."""
    return str(int(time.time() * 1000)) + "".join(random.choices(ID_ALPHABET, k=9))


def _cell(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def export_to_csv(records: List[Record], base: str, today: Optional[date] = None) -> Optional[CsvExport]:
    """Render `records` as CSV named `<base>_<YYYY-MM-DD>.csv`.

    Columns come from the first record. Returns None, writing nothing, when
    there is nothing to export.
    """
    if not records:
        logger.warning("No data to export for %s", base)
        return None

    headers = list(records[0].keys())
    buf = io.StringIO()
    csv.writer(buf, lineterminator="\n").writerow(headers)
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for record in records:
        writer.writerow([_cell(record[h]) if h in record else "" for h in headers])

    today = today or date.today()
    # no trailing newline after the last row
    return CsvExport(f"{base}_{today.isoformat()}.csv", buf.getvalue().rstrip("\n"))


def coerce_value(val: str) -> Any:
    # digit separators such as 1_000 stay text
    if val != "" and "_" not in val:
        try:
            return int(val)
        except ValueError:
            pass
        try:
            number = float(val)
        except ValueError:
            pass
        else:
            if not math.isnan(number):
                return number
    if val == "true":
        return True
    if val == "false":
        return False
    return val


def parse_csv(text: str) -> List[Record]:
    """Parse CSV text with a header line into one dict per data row.

    Cells are trimmed; numeric cells become numbers and `true`/`false`
    become booleans. Quoted cells may contain commas.
    """
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")), skipinitialspace=True)
    try:
        headers = [h.strip() for h in next(reader)]
    except StopIteration:
        return []

    rows = []
    for values in reader:
        if not any(v.strip() for v in values):
            continue
        rows.append({
            header: coerce_value(values[i].strip() if i < len(values) else "")
            for i, header in enumerate(headers)
        })
    return rows


async def process_csv_import(file, callback: Callable[[List[Record]], Any]) -> Any:
    """Read `file` (sync or async `read()`), parse it and hand the rows to `callback`."""
    content = file.read()
    if inspect.isawaitable(content):
        content = await content
    if isinstance(content, bytes):
        content = content.decode("utf-8-sig")

    rows = parse_csv(content)
    logger.info("Parsed %d row(s) from CSV import", len(rows))
    outcome = callback(rows)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    return outcome


def _record_id(record: Record) -> str:
    raw = record.get("id")
    return "" if raw is None or raw == "" else str(raw)


def merge_data(
    existing: List[Record],
    incoming: List[Record],
    id_factory: Callable[[], str] = generate_id,
) -> List[Record]:
    """Merge `incoming` over `existing` by id.

    Matching records are shallow-merged with incoming fields winning; rows
    without a known id are appended, getting a fresh id if they have none.
    Existing records keep their position.
    """
    merged: Dict[str, Record] = {_record_id(item): item for item in existing}
    for new_item in incoming:
        item_id = _record_id(new_item)
        if item_id and item_id in merged:
            merged[item_id] = {**merged[item_id], **new_item, "id": item_id}
        else:
            item_id = item_id or id_factory()
            merged[item_id] = {**new_item, "id": item_id}
    return list(merged.values())
