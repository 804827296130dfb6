"""
Create the database schema and bootstrap administrators.

Usage:
    python -m backend.database.init_db
    python -m backend.database.init_db --promote-admin someone@example.com

Tables:
- users: accounts (argon2 password hash, role).
- events: events owned by an organizer.
- event_attendees: one row per (event, user) registration. An event's
  attendee list and a user's registered events are both read from here.
"""

import argparse
import logging
import sys
from typing import List, Optional

from backend.config.constants import (
    CAPACITY_MAX,
    CAPACITY_MIN,
    DESCRIPTION_MAX_LENGTH,
    EVENT_CATEGORIES,
    EVENT_STATUSES,
    NAME_MAX_LENGTH,
    ROLE_ADMIN,
    ROLE_USER,
    STATUS_UPCOMING,
    TITLE_MAX_LENGTH,
    USER_ROLES,
)
from backend.database.db_connection import get_db


def _sql_list(values: List[str]) -> str:
    return ", ".join(f"'{v}'" for v in values)


SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS users (
    user_id SERIAL PRIMARY KEY,
    name VARCHAR({NAME_MAX_LENGTH}) NOT NULL,
    email VARCHAR(255) NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    role VARCHAR(20) NOT NULL DEFAULT '{ROLE_USER}'
        CHECK (role IN ({_sql_list(USER_ROLES)})),
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS events (
    event_id SERIAL PRIMARY KEY,
    title VARCHAR({TITLE_MAX_LENGTH}) NOT NULL,
    description VARCHAR({DESCRIPTION_MAX_LENGTH}) NOT NULL,
    event_date TIMESTAMPTZ NOT NULL,
    location TEXT NOT NULL,
    category VARCHAR(20) NOT NULL
        CHECK (category IN ({_sql_list(EVENT_CATEGORIES)})),
    capacity INTEGER NOT NULL
        CHECK (capacity BETWEEN {CAPACITY_MIN} AND {CAPACITY_MAX}),
    price NUMERIC(10, 2) NOT NULL DEFAULT 0 CHECK (price >= 0),
    status VARCHAR(20) NOT NULL DEFAULT '{STATUS_UPCOMING}'
        CHECK (status IN ({_sql_list(EVENT_STATUSES)})),
    organizer_id INTEGER NOT NULL REFERENCES users(user_id),
    image_url TEXT NOT NULL DEFAULT '',
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS event_attendees (
    event_id INTEGER NOT NULL REFERENCES events(event_id) ON DELETE CASCADE,
    user_id INTEGER NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
    registered_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (event_id, user_id)
);

CREATE INDEX IF NOT EXISTS idx_events_event_date ON events (event_date);
CREATE INDEX IF NOT EXISTS idx_events_organizer ON events (organizer_id);
CREATE INDEX IF NOT EXISTS idx_event_attendees_user ON event_attendees (user_id);
"""


def init_db() -> None:
    """
    Create all tables and indexes if they do not exist yet.
    Safe to run repeatedly.
    """
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
    logging.info("Database schema is up to date.")


def promote_admin(email: str) -> bool:
    """
    Give the user with this email the admin role.

    There is no HTTP endpoint that creates administrators, so the first one
    has to be promoted from the command line.

    Returns:
        bool: True if a user was updated, False if no user has that email.
    """
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE users
                SET role = %s, updated_at = CURRENT_TIMESTAMP
                WHERE email = %s;
                """,
                (ROLE_ADMIN, email.strip().lower()),
            )
            return cur.rowcount > 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Initialise the event management database.")
    parser.add_argument(
        "--promote-admin",
        metavar="EMAIL",
        help="give an existing user the admin role",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")

    init_db()

    if args.promote_admin:
        if not promote_admin(args.promote_admin):
            logging.error(f"No user found with email {args.promote_admin}")
            return 1
        logging.info(f"{args.promote_admin} is now an admin.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
