"""
Event model: field rules, validation, serialization and persistence helpers.

Field rules:
- title: 3..100 characters, trimmed.
- description: 10..1000 characters, trimmed.
- date: ISO-8601, must be in the future.
- location: required, trimmed.
- category: one of EVENT_CATEGORIES.
- capacity: integer 1..10000.
- price: number >= 0 (default 0).
- status: one of EVENT_STATUSES (default 'upcoming').
- imageUrl: string (default '').

The organizer is always the authenticated user and never comes from the
request body. Attendees live in the event_attendees table.
"""

import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from backend.config.constants import (
    CAPACITY_MAX,
    CAPACITY_MIN,
    DESCRIPTION_MAX_LENGTH,
    DESCRIPTION_MIN_LENGTH,
    EVENT_CATEGORIES,
    EVENT_STATUSES,
    STATUS_UPCOMING,
    TITLE_MAX_LENGTH,
    TITLE_MIN_LENGTH,
)
from backend.models.errors import ValidationError

# Request field -> column
UPDATABLE_FIELDS = {
    "title": "title",
    "description": "description",
    "date": "event_date",
    "location": "location",
    "category": "category",
    "capacity": "capacity",
    "price": "price",
    "status": "status",
    "imageUrl": "image_url",
}

EVENT_SELECT = """
    SELECT
        e.event_id, e.title, e.description, e.event_date, e.location,
        e.category, e.capacity, e.price, e.status, e.organizer_id,
        e.image_url, e.created_at, e.updated_at,
        u.name AS organizer_name, u.email AS organizer_email
    FROM events e
    JOIN users u ON u.user_id = e.organizer_id
"""


def parse_dt(val: Any) -> Optional[datetime]:
    """
    Safely parse an ISO-8601 string to an aware datetime.
    Naive values are taken as UTC.

    Returns:
        datetime: The parsed datetime, or None if invalid.
    """
    if not val or not isinstance(val, str):
        return None
    try:
        # Handles 'YYYY-MM-DDTHH:MM' and '...Z' or '...+00:00'
        if val.endswith("Z"):
            val = val[:-1] + "+00:00"
        parsed = datetime.fromisoformat(val)
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# --- FIELD VALIDATORS ---
def _clean_text(value: Any, label: str, min_len: int = 1, max_len: Optional[int] = None) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{label} must be a string")
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{label} is required")
    if len(text) < min_len:
        raise ValidationError(f"{label} must be at least {min_len} characters")
    if max_len and len(text) > max_len:
        raise ValidationError(f"{label} cannot exceed {max_len} characters")
    return text


def _clean_date(value: Any) -> datetime:
    if value in (None, ""):
        raise ValidationError("Event date is required")
    parsed = parse_dt(value)
    if not parsed:
        raise ValidationError("Invalid date format. Use ISO-8601.")
    if parsed <= datetime.now(timezone.utc):
        raise ValidationError("Event date must be in the future")
    return parsed


def _clean_category(value: Any) -> str:
    if value in (None, ""):
        raise ValidationError("Category is required")
    if value not in EVENT_CATEGORIES:
        raise ValidationError(f"category must be one of: {', '.join(EVENT_CATEGORIES)}")
    return value


def _clean_status(value: Any) -> str:
    if value not in EVENT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(EVENT_STATUSES)}")
    return value


def _clean_capacity(value: Any) -> int:
    if value in (None, ""):
        raise ValidationError("Capacity is required")
    if isinstance(value, bool):
        raise ValidationError("Capacity must be a whole number")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int):
        raise ValidationError("Capacity must be a whole number")
    if value < CAPACITY_MIN:
        raise ValidationError(f"Capacity must be at least {CAPACITY_MIN}")
    if value > CAPACITY_MAX:
        raise ValidationError(f"Capacity cannot exceed {CAPACITY_MAX}")
    return value


def _clean_price(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    if isinstance(value, bool):
        raise ValidationError("Price must be a number")
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Price must be a number")
    if math.isnan(price) or math.isinf(price):
        raise ValidationError("Price must be a number")
    if price < 0:
        raise ValidationError("Price cannot be negative")
    return price


def _clean_image_url(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError("imageUrl must be a string")
    return value.strip()


FIELD_CLEANERS = {
    "title": lambda v: _clean_text(v, "Title", TITLE_MIN_LENGTH, TITLE_MAX_LENGTH),
    "description": lambda v: _clean_text(v, "Description", DESCRIPTION_MIN_LENGTH, DESCRIPTION_MAX_LENGTH),
    "date": _clean_date,
    "location": lambda v: _clean_text(v, "Location"),
    "category": _clean_category,
    "capacity": _clean_capacity,
    "price": _clean_price,
    "status": _clean_status,
    "imageUrl": _clean_image_url,
}


def validate_event(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Validate an event payload and map it to column names.

    Args:
        data (dict): Request body.
        partial (bool): If True only the fields present are checked
            (update); otherwise every required field must be present and
            defaults are filled in (create).

    Returns:
        dict: Column name -> cleaned value.

    Raises:
        ValidationError: On the first rule that fails.
    """
    cleaned: Dict[str, Any] = {}

    for field, column in UPDATABLE_FIELDS.items():
        if partial and field not in data:
            continue
        if not partial and field == "status" and data.get("status") is None:
            cleaned[column] = STATUS_UPCOMING
            continue
        cleaned[column] = FIELD_CLEANERS[field](data.get(field))

    return cleaned


# --- SERIALIZATION ---
def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_event(row: Dict[str, Any], attendees: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Public JSON form of an event with organizer and attendees populated
    and the availableSeats / isFull virtuals computed.
    """
    price = row["price"]
    if isinstance(price, Decimal):
        price = float(price)

    return {
        "id": row["event_id"],
        "title": row["title"],
        "description": row["description"],
        "date": _iso(row["event_date"]),
        "location": row["location"],
        "category": row["category"],
        "capacity": row["capacity"],
        "price": price,
        "status": row["status"],
        "organizer": {
            "id": row["organizer_id"],
            "name": row.get("organizer_name"),
            "email": row.get("organizer_email"),
        },
        "attendees": attendees,
        "imageUrl": row["image_url"],
        "availableSeats": row["capacity"] - len(attendees),
        "isFull": len(attendees) >= row["capacity"],
        "createdAt": _iso(row.get("created_at")),
        "updatedAt": _iso(row.get("updated_at")),
    }


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit)


# --- PERSISTENCE ---
def fetch_attendees(cur, event_ids: List[int]) -> Dict[int, List[Dict[str, Any]]]:
    """Attendees of each event as {id, name, email}, in registration order."""
    grouped: Dict[int, List[Dict[str, Any]]] = {event_id: [] for event_id in event_ids}
    if not event_ids:
        return grouped

    cur.execute(
        """
        SELECT ea.event_id, u.user_id, u.name, u.email
        FROM event_attendees ea
        JOIN users u ON u.user_id = ea.user_id
        WHERE ea.event_id = ANY(%s)
        ORDER BY ea.registered_at, u.user_id;
        """,
        (list(event_ids),),
    )
    for row in cur.fetchall():
        grouped.setdefault(row["event_id"], []).append(
            {"id": row["user_id"], "name": row["name"], "email": row["email"]}
        )
    return grouped


def find_event_by_id(cur, event_id: int) -> Optional[Dict[str, Any]]:
    """Serialized event, or None if it does not exist."""
    cur.execute(EVENT_SELECT + " WHERE e.event_id = %s;", (event_id,))
    row = cur.fetchone()
    if not row:
        return None
    attendees = fetch_attendees(cur, [event_id])[event_id]
    return serialize_event(dict(row), attendees)


def lock_event(cur, event_id: int) -> Optional[Dict[str, Any]]:
    """
    Lock the event row for the rest of the transaction and return
    its id, organizer and capacity.
    """
    cur.execute(
        """
        SELECT event_id, organizer_id, capacity
        FROM events
        WHERE event_id = %s
        FOR UPDATE;
        """,
        (event_id,),
    )
    row = cur.fetchone()
    return dict(row) if row else None


def attendee_ids(cur, event_id: int) -> List[int]:
    cur.execute("SELECT user_id FROM event_attendees WHERE event_id = %s;", (event_id,))
    return [row["user_id"] for row in cur.fetchall()]


def add_attendee(cur, event_id: int, user_id: int) -> None:
    cur.execute(
        "INSERT INTO event_attendees (event_id, user_id) VALUES (%s, %s);",
        (event_id, user_id),
    )


def remove_attendee(cur, event_id: int, user_id: int) -> int:
    cur.execute(
        "DELETE FROM event_attendees WHERE event_id = %s AND user_id = %s;",
        (event_id, user_id),
    )
    return cur.rowcount


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def list_events(
    cur,
    category: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Dict[str, Any]], int]:
    """
    One page of events sorted by date, plus the total number of matches.

    Filters:
    - category / status: exact match.
    - search: case-insensitive substring of title or description.
    """
    where = []
    params: List[Any] = []

    if category:
        where.append("e.category = %s")
        params.append(category)
    if status:
        where.append("e.status = %s")
        params.append(status)
    if search:
        pattern = f"%{_escape_like(search)}%"
        where.append("(e.title ILIKE %s OR e.description ILIKE %s)")
        params.extend([pattern, pattern])

    where_sql = f" WHERE {' AND '.join(where)}" if where else ""

    cur.execute(f"SELECT COUNT(*) AS total FROM events e{where_sql};", params)
    total = cur.fetchone()["total"]

    cur.execute(
        EVENT_SELECT + where_sql + " ORDER BY e.event_date ASC, e.event_id ASC LIMIT %s OFFSET %s;",
        params + [limit, (page - 1) * limit],
    )
    rows = [dict(r) for r in cur.fetchall()]

    attendees = fetch_attendees(cur, [r["event_id"] for r in rows])
    events = [serialize_event(r, attendees.get(r["event_id"], [])) for r in rows]
    return events, total


def create_event(cur, fields: Dict[str, Any], organizer_id: int) -> int:
    columns = list(fields.keys()) + ["organizer_id"]
    values = list(fields.values()) + [organizer_id]
    placeholders = ", ".join(["%s"] * len(values))

    cur.execute(
        f"INSERT INTO events ({', '.join(columns)}) VALUES ({placeholders}) RETURNING event_id;",
        values,
    )
    return cur.fetchone()["event_id"]


def update_event(cur, event_id: int, fields: Dict[str, Any]) -> None:
    set_clause = ", ".join(f"{column} = %s" for column in fields)
    if set_clause:
        set_clause += ", "
    set_clause += "updated_at = CURRENT_TIMESTAMP"

    cur.execute(
        f"UPDATE events SET {set_clause} WHERE event_id = %s;",
        list(fields.values()) + [event_id],
    )


def delete_event(cur, event_id: int) -> int:
    cur.execute("DELETE FROM events WHERE event_id = %s;", (event_id,))
    return cur.rowcount
