"""
Events service routes: list events and reserve places.
Reservations are capacity-checked against the event's declared capacity.
"""

import logging
from decimal import Decimal
from typing import Tuple, Dict, Any, List

import psycopg2.errors
from flask import Blueprint, request, jsonify, Response

from ashilac.database.db_connection import get_db
from ashilac.auth_service.utils import check_acting_user
from ashilac.errors import (
    CapacityExceededError,
    NotFoundError,
    ValidationError,
    register_error_handlers,
)
from ashilac.helpers import parse_int, public_user

events_bp = Blueprint("events", __name__)
register_error_handlers(events_bp)


@events_bp.before_request
def before_request() -> None:
    logging.info(f"[Events] Incoming {request.method} {request.path}")


@events_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Events] Response {response.status}")
    return response


def _serialize_event(row: Dict[str, Any], registrations: List[Dict[str, Any]]) -> Dict[str, Any]:
    price = row.get("price")
    return {
        "id": row["event_id"],
        "title": row["title"],
        "description": row["description"],
        "date": row["date"].isoformat() if row.get("date") else None,
        "location": row["location"],
        "capacity": row["capacity"],
        "price": float(price) if isinstance(price, Decimal) else price,
        "category": row["category"],
        "image": row["image"],
        "registrations": registrations,
    }


@events_bp.route("", methods=["GET"])
def list_events() -> Tuple[Response, int]:
    """
    Return all events with their registrations.

    Each registration's user is resolved to a public summary
    (id, name, email, role).

    Returns:
        200: List of event objects.
        500: Database error.
    """
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute("""
                SELECT event_id, title, description, date, location,
                       capacity, price, category, image
                FROM events
                ORDER BY date NULLS LAST, event_id;
            """)
            events = [dict(r) for r in cur.fetchall()]

            registrations: Dict[int, List[Dict[str, Any]]] = {e["event_id"]: [] for e in events}
            if events:
                cur.execute("""
                    SELECT r.registration_id, r.event_id, r.participants, r.registered_at,
                           u.user_id, u.name AS user_name, u.email AS user_email, u.role AS user_role
                    FROM event_registrations r
                    LEFT JOIN users u ON u.user_id = r.user_id
                    WHERE r.event_id = ANY(%s)
                    ORDER BY r.registered_at, r.registration_id;
                """, (list(registrations),))
                for r in cur.fetchall():
                    registrations[r["event_id"]].append({
                        "id": r["registration_id"],
                        "user": public_user(r),
                        "date": r["registered_at"].isoformat() if r.get("registered_at") else None,
                        "participants": r["participants"],
                    })

    return jsonify([_serialize_event(e, registrations[e["event_id"]]) for e in events]), 200


@events_bp.route("/<int:event_id>/reservations", methods=["POST"])
def reserve(event_id: int) -> Tuple[Response, int]:
    """
    Reserve places on an event.

    Expects JSON:
        { "userId": int, "participants": int }

    The event row is locked (SELECT ... FOR UPDATE) for the whole
    check-then-insert, so concurrent reservations on one event are
    serialized and the total never exceeds capacity.

    Returns:
        200: { "message": "Reservation confirmed" }
        400: Invalid input, unknown user, or capacity exceeded.
        404: Event not found.
        500: Database error.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    user_id = parse_int(data.get("userId"), "userId")
    participants = parse_int(data.get("participants"), "participants")
    if participants < 1:
        raise ValidationError("participants must be at least 1")

    err, code = check_acting_user(user_id)
    if err:
        return err, code

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT capacity FROM events WHERE event_id = %s FOR UPDATE;",
                (event_id,),
            )
            event = cur.fetchone()
            if not event:
                raise NotFoundError("Event not found")

            cur.execute(
                """
                SELECT COALESCE(SUM(participants), 0) AS reserved
                FROM event_registrations
                WHERE event_id = %s;
                """,
                (event_id,),
            )
            reserved = cur.fetchone()["reserved"]

            if reserved + participants > event["capacity"]:
                # Raising inside the block rolls back and releases the lock
                raise CapacityExceededError("Maximum capacity reached")

            try:
                cur.execute(
                    """
                    INSERT INTO event_registrations (event_id, user_id, participants)
                    VALUES (%s, %s, %s);
                    """,
                    (event_id, user_id, participants),
                )
            except psycopg2.errors.ForeignKeyViolation:
                raise ValidationError("Unknown user")

    logging.info(
        f"[Events] User {user_id} reserved {participants} place(s) on event {event_id} "
        f"({reserved + participants}/{event['capacity']})"
    )
    return jsonify({"message": "Reservation confirmed"}), 200
