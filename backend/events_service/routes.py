"""
Events service routes: create, read, update, delete events, and attendee
registration.

Reads are public; every mutation needs a bearer token, and update/delete
are limited to the event's organizer.
"""

import logging
from typing import Tuple

from flask import Blueprint, Response, g, jsonify, request

from backend.auth_service.middleware import protect
from backend.config.constants import DEFAULT_LIMIT, DEFAULT_PAGE, HTTP_STATUS
from backend.database.db_connection import get_db
from backend.gateway.request_utils import json_body
from backend.models import event_model
from backend.models.errors import ValidationError

events_bp = Blueprint("events", __name__)


# --- REQUEST LOGGING ---
@events_bp.before_request
def before_request() -> None:
    logging.info(f"[Events] Incoming {request.method} {request.path}")


@events_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Events] Response {response.status}")
    return response


def _error(message: str, status: str) -> Tuple[Response, int]:
    return jsonify({"error": message}), HTTP_STATUS[status]


def _positive_int(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a positive integer")
    if value < 1:
        raise ValidationError(f"{name} must be a positive integer")
    return value


@events_bp.route("/", methods=["GET"], strict_slashes=False)
def get_all_events() -> Tuple[Response, int]:
    """
    List events sorted by date.

    Query parameters:
    - category, status: exact filters.
    - search: case-insensitive match on title or description.
    - page (default 1), limit (default 10).

    Returns:
        200: { events, totalPages, currentPage, totalEvents }
        400: Bad paging parameters or database error.
    """
    try:
        page = _positive_int("page", DEFAULT_PAGE)
        limit = _positive_int("limit", DEFAULT_LIMIT)
    except ValidationError as e:
        return _error(str(e), "BAD_REQUEST")

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                events, total = event_model.list_events(
                    cur,
                    category=request.args.get("category"),
                    status=request.args.get("status"),
                    search=request.args.get("search"),
                    page=page,
                    limit=limit,
                )
    except Exception as e:
        logging.error(f"[Events] Database error listing events: {e}")
        return _error(str(e), "BAD_REQUEST")

    return jsonify({
        "events": events,
        "totalPages": event_model.total_pages(total, limit),
        "currentPage": page,
        "totalEvents": total,
    }), HTTP_STATUS["OK"]


@events_bp.route("/<int:event_id>", methods=["GET"])
def get_event_by_id(event_id: int) -> Tuple[Response, int]:
    """
    Get a single event with organizer and attendees populated.

    Returns:
        200: { event }
        404: Event not found.
    """
    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                event = event_model.find_event_by_id(cur, event_id)
    except Exception as e:
        logging.error(f"[Events] Database error getting event {event_id}: {e}")
        return _error(str(e), "BAD_REQUEST")

    if not event:
        return _error("Event not found", "NOT_FOUND")

    return jsonify({"event": event}), HTTP_STATUS["OK"]


@events_bp.route("/", methods=["POST"], strict_slashes=False)
@protect
def create_event() -> Tuple[Response, int]:
    """
    Create an event organized by the authenticated user.

    Returns:
        201: { message, event }
        400: Validation error.
    """
    try:
        fields = event_model.validate_event(json_body())
    except ValidationError as e:
        return _error(str(e), "BAD_REQUEST")

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                event_id = event_model.create_event(cur, fields, g.user["user_id"])
                event = event_model.find_event_by_id(cur, event_id)
    except Exception as e:
        logging.error(f"[Events] Database error creating event: {e}")
        return _error(str(e), "BAD_REQUEST")

    logging.info(f"[Events] User {g.user['user_id']} created event {event_id}")

    return jsonify({
        "message": "Event created successfully",
        "event": event,
    }), HTTP_STATUS["CREATED"]


@events_bp.route("/<int:event_id>", methods=["PUT"])
@protect
def update_event(event_id: int) -> Tuple[Response, int]:
    """
    Update an event. Only its organizer may do so.

    Only title, description, date, location, category, capacity, price,
    status and imageUrl can change. Capacity cannot drop below the number
    of registered attendees.

    Returns:
        200: { message, event }
        400: Validation error.
        403: Requester is not the organizer.
        404: Event not found.
    """
    try:
        data = json_body()
    except ValidationError as e:
        return _error(str(e), "BAD_REQUEST")

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                current = event_model.lock_event(cur, event_id)
                if not current:
                    return _error("Event not found", "NOT_FOUND")

                if current["organizer_id"] != g.user["user_id"]:
                    return _error("Not authorized to update this event", "FORBIDDEN")

                try:
                    fields = event_model.validate_event(data, partial=True)
                except ValidationError as e:
                    return _error(str(e), "BAD_REQUEST")

                if "capacity" in fields:
                    registered = len(event_model.attendee_ids(cur, event_id))
                    if fields["capacity"] < registered:
                        return _error(
                            f"Capacity cannot be lower than the {registered} registered attendees",
                            "BAD_REQUEST",
                        )

                event_model.update_event(cur, event_id, fields)
                event = event_model.find_event_by_id(cur, event_id)
    except Exception as e:
        logging.error(f"[Events] Database error updating event {event_id}: {e}")
        return _error(str(e), "BAD_REQUEST")

    return jsonify({
        "message": "Event updated successfully",
        "event": event,
    }), HTTP_STATUS["OK"]


@events_bp.route("/<int:event_id>", methods=["DELETE"])
@protect
def delete_event(event_id: int) -> Tuple[Response, int]:
    """
    Delete an event and its attendee registrations. Organizer only.

    Returns:
        200: { message }
        403: Requester is not the organizer.
        404: Event not found.
    """
    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                current = event_model.lock_event(cur, event_id)
                if not current:
                    return _error("Event not found", "NOT_FOUND")

                if current["organizer_id"] != g.user["user_id"]:
                    return _error("Not authorized to delete this event", "FORBIDDEN")

                event_model.delete_event(cur, event_id)
    except Exception as e:
        logging.error(f"[Events] Database error deleting event {event_id}: {e}")
        return _error(str(e), "BAD_REQUEST")

    logging.info(f"[Events] User {g.user['user_id']} deleted event {event_id}")

    return jsonify({"message": "Event deleted successfully"}), HTTP_STATUS["OK"]


@events_bp.route("/<int:event_id>/register", methods=["POST"])
@protect
def register_for_event(event_id: int) -> Tuple[Response, int]:
    """
    Register the authenticated user as an attendee.

    The event row stays locked while capacity and duplicates are checked,
    so concurrent registrations cannot overfill it.

    Returns:
        200: { message, event }
        400: Event full or already registered.
        404: Event not found.
    """
    user_id = g.user["user_id"]

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                current = event_model.lock_event(cur, event_id)
                if not current:
                    return _error("Event not found", "NOT_FOUND")

                attendees = event_model.attendee_ids(cur, event_id)

                if len(attendees) >= current["capacity"]:
                    return _error("Event is full", "BAD_REQUEST")

                if user_id in attendees:
                    return _error("Already registered for this event", "BAD_REQUEST")

                event_model.add_attendee(cur, event_id, user_id)
                event = event_model.find_event_by_id(cur, event_id)
    except Exception as e:
        logging.error(f"[Events] Database error registering user {user_id} for event {event_id}: {e}")
        return _error(str(e), "BAD_REQUEST")

    return jsonify({
        "message": "Successfully registered for event",
        "event": event,
    }), HTTP_STATUS["OK"]


@events_bp.route("/<int:event_id>/register", methods=["DELETE"])
@protect
def unregister_from_event(event_id: int) -> Tuple[Response, int]:
    """
    Remove the authenticated user from an event's attendees.

    Returns:
        200: { message }
        400: Not registered.
        404: Event not found.
    """
    user_id = g.user["user_id"]

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                current = event_model.lock_event(cur, event_id)
                if not current:
                    return _error("Event not found", "NOT_FOUND")

                if not event_model.remove_attendee(cur, event_id, user_id):
                    return _error("Not registered for this event", "BAD_REQUEST")
    except Exception as e:
        logging.error(f"[Events] Database error unregistering user {user_id} from event {event_id}: {e}")
        return _error(str(e), "BAD_REQUEST")

    return jsonify({"message": "Successfully unregistered from event"}), HTTP_STATUS["OK"]
