"""
PostgreSQL connection helper.
Provides get_db() for use by services.
"""

import os
import logging
from contextlib import contextmanager
from typing import Iterator

import psycopg2
from psycopg2.extras import DictCursor
from dotenv import load_dotenv

# Load .env variables from the project root
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set. Please set the environment variable.")


@contextmanager
def get_db() -> Iterator["psycopg2.extensions.connection"]:
    """
    Open a psycopg2 connection with dictionary-based row access.

    The body of the `with` block is a single transaction: it is committed
    when the block exits normally and rolled back if it raises. The
    connection is always closed afterwards.

    Usage:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(...)

    Raises:
        psycopg2.Error: If the connection or a statement fails.
    """
    try:
        conn = psycopg2.connect(DATABASE_URL, cursor_factory=DictCursor)
    except psycopg2.Error as e:
        logging.error(f"Error connecting to database: {e}")
        raise

    try:
        with conn:
            yield conn
    finally:
        conn.close()
