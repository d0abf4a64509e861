"""
PostgreSQL connection helper.
Provides get_db() for use by services.
"""

import logging
import os
from contextlib import contextmanager
from typing import Iterator

import psycopg2
from psycopg2.extras import RealDictCursor
from dotenv import load_dotenv

# Load .env variables from the project root
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql://localhost:5432/ashilac")


@contextmanager
def get_db() -> Iterator["psycopg2.extensions.connection"]:
    """
    Open a psycopg2 connection with dictionary-based row access.

    The transaction is committed when the block exits normally, rolled back
    when it raises, and the connection is closed in both cases.

    Usage:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(...)

    Raises:
        psycopg2.Error: If the connection or a statement fails.
    """
    try:
        conn = psycopg2.connect(DATABASE_URL, cursor_factory=RealDictCursor)
    except psycopg2.Error as e:
        logging.error(f"Error connecting to database: {e}")
        raise

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
