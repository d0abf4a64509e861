"""
Dashboard service routes: aggregate counts for the admin home page.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Tuple

from flask import Blueprint, jsonify, Response

from ashilac.database.db_connection import get_db
from ashilac.errors import register_error_handlers

dashboard_bp = Blueprint("dashboard", __name__)
register_error_handlers(dashboard_bp)

# Placeholder until payments are tracked
REVENUE_PLACEHOLDER = 1250000

# Whitelisted table names; never interpolate user input here
COUNTED_TABLES = {
    "members": "users",
    "events": "events",
    "formations": "formations",
}


def count_rows(table: str) -> int:
    """Count the rows of one table on its own connection."""
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(f"SELECT COUNT(*) AS count FROM {table};")
            return cur.fetchone()["count"]


@dashboard_bp.route("/stats", methods=["GET"])
def get_stats() -> Tuple[Response, int]:
    """
    Return member, event and formation counts plus the revenue figure.

    The three counts run concurrently; the first store failure is re-raised
    and rendered as a 500.

    Returns:
        200: { "members": int, "events": int, "formations": int, "revenue": int }
        500: Database error.
    """
    with ThreadPoolExecutor(max_workers=len(COUNTED_TABLES)) as pool:
        futures = {key: pool.submit(count_rows, table) for key, table in COUNTED_TABLES.items()}
        stats = {key: future.result() for key, future in futures.items()}

    stats["revenue"] = REVENUE_PLACEHOLDER
    logging.info(f"[Dashboard] Stats {stats}")
    return jsonify(stats), 200
