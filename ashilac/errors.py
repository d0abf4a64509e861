"""
Error taxonomy shared by the HTTP services.

Views raise one of the ApiError subclasses below; the handlers registered by
register_error_handlers() turn them into {"error": message} JSON bodies with
the matching status code. Store failures (psycopg2.Error) surface as 500.
"""

import logging
from typing import Tuple

import psycopg2
from flask import Blueprint, Response, jsonify


class ApiError(Exception):
    """Base class for errors rendered as JSON responses."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    """Bad or duplicate input."""

    status_code = 400


class AuthError(ApiError):
    """Bad credentials."""

    status_code = 401


class NotFoundError(ApiError):
    status_code = 404


class CapacityExceededError(ApiError):
    """The reservation would push an event past its capacity."""

    status_code = 400


def handle_api_error(error: ApiError) -> Tuple[Response, int]:
    return jsonify({"error": error.message}), error.status_code


def handle_store_error(error: psycopg2.Error) -> Tuple[Response, int]:
    logging.error(f"Database error: {error}")
    message = str(error).strip() or error.__class__.__name__
    return jsonify({"error": message}), 500


def register_error_handlers(bp: Blueprint) -> None:
    """Attach the JSON error handlers to a service blueprint."""
    bp.register_error_handler(ApiError, handle_api_error)
    bp.register_error_handler(psycopg2.Error, handle_store_error)
