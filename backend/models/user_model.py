"""
User model: field rules, validation, serialization and persistence helpers.

Every helper takes an open cursor so the caller decides the transaction
boundary (see `backend.database.db_connection.get_db`).

The password hash is only ever selected by `find_user_for_login`; all other
reads leave it out.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from backend.config.constants import (
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
    PASSWORD_MIN_LENGTH,
    ROLE_USER,
)
from backend.models.errors import ValidationError

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

PUBLIC_COLUMNS = "user_id, name, email, role, created_at, updated_at"


# --- VALIDATION ---
def clean_name(value: Any) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError("Name must be a string")
    name = (value or "").strip()
    if not name:
        raise ValidationError("Name is required")
    if len(name) < NAME_MIN_LENGTH:
        raise ValidationError(f"Name must be at least {NAME_MIN_LENGTH} characters")
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f"Name cannot exceed {NAME_MAX_LENGTH} characters")
    return name


def clean_email(value: Any) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError("Email must be a string")
    email = (value or "").strip().lower()
    if not email:
        raise ValidationError("Email is required")
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Please provide a valid email")
    return email


def clean_password(value: Any) -> str:
    if not value or not isinstance(value, str):
        raise ValidationError("Password is required")
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    return value


def validate_registration(data: Dict[str, Any]) -> Dict[str, str]:
    """
    Validate a registration payload.

    Returns:
        dict: Cleaned name, email and password.

    Raises:
        ValidationError: On the first rule that fails.
    """
    return {
        "name": clean_name(data.get("name")),
        "email": clean_email(data.get("email")),
        "password": clean_password(data.get("password")),
    }


# --- SERIALIZATION ---
def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_user(row: Dict[str, Any]) -> Dict[str, Any]:
    """Short public form used in auth responses and admin listings."""
    return {
        "id": row["user_id"],
        "name": row["name"],
        "email": row["email"],
        "role": row["role"],
    }


def serialize_event_summary(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row["event_id"],
        "title": row["title"],
        "date": _iso(row["event_date"]),
        "location": row["location"],
    }


# --- PERSISTENCE ---
def find_user_by_id(cur, user_id: int) -> Optional[Dict[str, Any]]:
    cur.execute(f"SELECT {PUBLIC_COLUMNS} FROM users WHERE user_id = %s;", (user_id,))
    row = cur.fetchone()
    return dict(row) if row else None


def find_user_by_email(cur, email: str) -> Optional[Dict[str, Any]]:
    cur.execute(f"SELECT {PUBLIC_COLUMNS} FROM users WHERE email = %s;", (email,))
    row = cur.fetchone()
    return dict(row) if row else None


def find_user_for_login(cur, email: str) -> Optional[Dict[str, Any]]:
    """Like find_user_by_email, but includes password_hash."""
    cur.execute(
        f"SELECT {PUBLIC_COLUMNS}, password_hash FROM users WHERE email = %s;",
        (email,),
    )
    row = cur.fetchone()
    return dict(row) if row else None


def create_user(cur, name: str, email: str, password_hash: str, role: str = ROLE_USER) -> Dict[str, Any]:
    cur.execute(
        f"""
        INSERT INTO users (name, email, password_hash, role)
        VALUES (%s, %s, %s, %s)
        RETURNING {PUBLIC_COLUMNS};
        """,
        (name, email, password_hash, role),
    )
    return dict(cur.fetchone())


def update_user(cur, user_id: int, name: str, email: str) -> Optional[Dict[str, Any]]:
    cur.execute(
        f"""
        UPDATE users
        SET name = %s, email = %s, updated_at = CURRENT_TIMESTAMP
        WHERE user_id = %s
        RETURNING {PUBLIC_COLUMNS};
        """,
        (name, email, user_id),
    )
    row = cur.fetchone()
    return dict(row) if row else None


def update_password_hash(cur, user_id: int, password_hash: str) -> None:
    cur.execute(
        "UPDATE users SET password_hash = %s WHERE user_id = %s;",
        (password_hash, user_id),
    )


def list_users(cur) -> List[Dict[str, Any]]:
    """
    All users ordered by id, each with the ids of the events they created
    and the events they are registered for.
    """
    cur.execute(
        """
        SELECT
            u.user_id, u.name, u.email, u.role, u.created_at, u.updated_at,
            ARRAY(
                SELECT e.event_id FROM events e
                WHERE e.organizer_id = u.user_id ORDER BY e.event_id
            ) AS created_event_ids,
            ARRAY(
                SELECT ea.event_id FROM event_attendees ea
                WHERE ea.user_id = u.user_id ORDER BY ea.registered_at
            ) AS registered_event_ids
        FROM users u
        ORDER BY u.user_id ASC;
        """
    )
    users = []
    for row in cur.fetchall():
        user = serialize_user(row)
        user["createdEvents"] = list(row["created_event_ids"] or [])
        user["registeredEvents"] = list(row["registered_event_ids"] or [])
        user["createdAt"] = _iso(row["created_at"])
        user["updatedAt"] = _iso(row["updated_at"])
        users.append(user)
    return users


def load_profile(cur, user: Dict[str, Any]) -> Dict[str, Any]:
    """
    Full profile of a user with created and registered events populated
    as {id, title, date, location}.
    """
    cur.execute(
        """
        SELECT event_id, title, event_date, location
        FROM events
        WHERE organizer_id = %s
        ORDER BY event_date;
        """,
        (user["user_id"],),
    )
    created = [serialize_event_summary(r) for r in cur.fetchall()]

    cur.execute(
        """
        SELECT e.event_id, e.title, e.event_date, e.location
        FROM event_attendees ea
        JOIN events e ON e.event_id = ea.event_id
        WHERE ea.user_id = %s
        ORDER BY e.event_date;
        """,
        (user["user_id"],),
    )
    registered = [serialize_event_summary(r) for r in cur.fetchall()]

    profile = serialize_user(user)
    profile["createdEvents"] = created
    profile["registeredEvents"] = registered
    profile["createdAt"] = _iso(user.get("created_at"))
    profile["updatedAt"] = _iso(user.get("updated_at"))
    return profile
