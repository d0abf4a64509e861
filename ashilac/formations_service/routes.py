"""
Formations service routes: list training courses and enroll members.
"""

import logging
from typing import Tuple, Dict, Any, List

import psycopg2.errors
from flask import Blueprint, request, jsonify, Response

from ashilac.database.db_connection import get_db
from ashilac.auth_service.utils import check_acting_user
from ashilac.errors import NotFoundError, ValidationError, register_error_handlers
from ashilac.helpers import parse_int, public_user

formations_bp = Blueprint("formations", __name__)
register_error_handlers(formations_bp)


@formations_bp.before_request
def before_request() -> None:
    logging.info(f"[Formations] Incoming {request.method} {request.path}")


@formations_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Formations] Response {response.status}")
    return response


@formations_bp.route("", methods=["GET"])
def list_formations() -> Tuple[Response, int]:
    """
    Get all formations with their schedule and enrolled students.

    Returns:
        200: List of formation objects.
        500: Database error.
    """
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute("""
                SELECT formation_id, title, description, duration, level, instructor, schedule
                FROM formations
                ORDER BY formation_id;
            """)
            formations = [dict(r) for r in cur.fetchall()]

            students: Dict[int, List[Dict[str, Any]]] = {f["formation_id"]: [] for f in formations}
            if formations:
                cur.execute("""
                    SELECT s.enrollment_id, s.formation_id, s.progress, s.completed,
                           u.user_id, u.name AS user_name, u.email AS user_email, u.role AS user_role
                    FROM formation_students s
                    LEFT JOIN users u ON u.user_id = s.user_id
                    WHERE s.formation_id = ANY(%s)
                    ORDER BY s.enrolled_at, s.enrollment_id;
                """, (list(students),))
                for s in cur.fetchall():
                    students[s["formation_id"]].append({
                        "id": s["enrollment_id"],
                        "user": public_user(s),
                        "progress": s["progress"],
                        "completed": s["completed"],
                    })

    return jsonify([
        {
            "id": f["formation_id"],
            "title": f["title"],
            "description": f["description"],
            "duration": f["duration"],
            "level": f["level"],
            "instructor": f["instructor"],
            "schedule": f["schedule"] or [],
            "students": students[f["formation_id"]],
        }
        for f in formations
    ]), 200


@formations_bp.route("/<int:formation_id>/register", methods=["POST"])
def enroll(formation_id: int) -> Tuple[Response, int]:
    """
    Enroll a member in a formation.

    Expects JSON:
        { "userId": int }

    The student starts with progress 0 and completed false. There is no
    duplicate-enrollment check and no capacity.

    Returns:
        200: { "message": "Enrollment confirmed" }
        400: Invalid or unknown userId.
        404: Formation not found.
        500: Database error.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    user_id = parse_int(data.get("userId"), "userId")

    err, code = check_acting_user(user_id)
    if err:
        return err, code

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1 FROM formations WHERE formation_id = %s;", (formation_id,))
            if not cur.fetchone():
                raise NotFoundError("Formation not found")

            try:
                cur.execute(
                    """
                    INSERT INTO formation_students (formation_id, user_id, progress, completed)
                    VALUES (%s, %s, 0, FALSE);
                    """,
                    (formation_id, user_id),
                )
            except psycopg2.errors.ForeignKeyViolation:
                raise ValidationError("Unknown user")

    logging.info(f"[Formations] User {user_id} enrolled in formation {formation_id}")
    return jsonify({"message": "Enrollment confirmed"}), 200
