import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

from backend.models import event_model, user_model
from backend.models.errors import ValidationError


def _future(days=30):
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def _payload(**overrides):
    data = {
        "title": "  Python Meetup  ",
        "description": "Monthly meetup for Python developers",
        "date": _future(),
        "location": " Room 101 ",
        "category": "Meetup",
        "capacity": 30,
    }
    data.update(overrides)
    return data


# --- EVENT VALIDATION ---
def test_validate_event_fills_defaults():
    fields = event_model.validate_event(_payload())

    assert fields["title"] == "Python Meetup"
    assert fields["location"] == "Room 101"
    assert fields["price"] == 0.0
    assert fields["status"] == "upcoming"
    assert fields["image_url"] == ""
    assert fields["event_date"].tzinfo is not None


@pytest.mark.parametrize("overrides, message", [
    ({"title": "ab"}, "Title must be at least 3 characters"),
    ({"title": "x" * 101}, "Title cannot exceed 100 characters"),
    ({"description": "short"}, "Description must be at least 10 characters"),
    ({"date": "2001-01-01T00:00:00Z"}, "Event date must be in the future"),
    ({"date": "next tuesday"}, "Invalid date format. Use ISO-8601."),
    ({"location": "   "}, "Location is required"),
    ({"category": "Party"}, None),
    ({"capacity": 0}, "Capacity must be at least 1"),
    ({"capacity": 10001}, "Capacity cannot exceed 10000"),
    ({"capacity": "many"}, "Capacity must be a whole number"),
    ({"capacity": True}, "Capacity must be a whole number"),
    ({"price": -1}, "Price cannot be negative"),
    ({"status": "postponed"}, None),
])
def test_validate_event_rejects(overrides, message):
    with pytest.raises(ValidationError) as excinfo:
        event_model.validate_event(_payload(**overrides))
    if message:
        assert str(excinfo.value) == message


def test_validate_event_partial_only_checks_given_fields():
    fields = event_model.validate_event({"capacity": "12", "imageUrl": "http://img"}, partial=True)
    assert fields == {"capacity": 12, "image_url": "http://img"}


def test_validate_event_partial_ignores_unknown_fields():
    assert event_model.validate_event({"organizer": 7, "attendees": []}, partial=True) == {}


def test_parse_dt_naive_is_utc():
    parsed = event_model.parse_dt("2030-01-01T10:00")
    assert parsed == datetime(2030, 1, 1, 10, 0, tzinfo=timezone.utc)


# --- EVENT SERIALIZATION ---
def _row(**overrides):
    row = {
        "event_id": 7,
        "title": "Concert",
        "description": "An evening concert downtown",
        "event_date": datetime(2030, 1, 1, 20, 0, tzinfo=timezone.utc),
        "location": "Arena",
        "category": "Concert",
        "capacity": 2,
        "price": Decimal("15.50"),
        "status": "upcoming",
        "organizer_id": 3,
        "organizer_name": "Org",
        "organizer_email": "org@example.com",
        "image_url": "",
        "created_at": None,
        "updated_at": None,
    }
    row.update(overrides)
    return row


def test_serialize_event_virtuals():
    attendees = [{"id": 1, "name": "A", "email": "a@example.com"}]
    event = event_model.serialize_event(_row(), attendees)

    assert event["availableSeats"] == 1
    assert event["isFull"] is False
    assert event["price"] == 15.5
    assert event["date"] == "2030-01-01T20:00:00+00:00"
    assert event["organizer"] == {"id": 3, "name": "Org", "email": "org@example.com"}


def test_serialize_event_full():
    attendees = [{"id": 1}, {"id": 2}]
    event = event_model.serialize_event(_row(), attendees)

    assert event["availableSeats"] == 0
    assert event["isFull"] is True


@pytest.mark.parametrize("total, limit, expected", [
    (0, 10, 0),
    (1, 10, 1),
    (10, 10, 1),
    (11, 10, 2),
    (23, 5, 5),
])
def test_total_pages(total, limit, expected):
    assert event_model.total_pages(total, limit) == expected


# --- EVENT PERSISTENCE ---
def test_list_events_builds_filters_and_offset():
    cur = MagicMock()
    cur.fetchone.return_value = {"total": 0}
    cur.fetchall.return_value = []

    events, total = event_model.list_events(
        cur, category="Workshop", status="upcoming", search="50%_off", page=3, limit=5
    )

    assert events == []
    assert total == 0

    count_sql, count_params = cur.execute.call_args_list[0].args
    assert "e.category = %s" in count_sql
    assert "e.status = %s" in count_sql
    assert "ILIKE" in count_sql
    assert count_params == ["Workshop", "upcoming", "%50\\%\\_off%", "%50\\%\\_off%"]

    page_sql, page_params = cur.execute.call_args_list[1].args
    assert "ORDER BY e.event_date ASC" in page_sql
    assert page_params[-2:] == [5, 10]


def test_list_events_populates_attendees():
    cur = MagicMock()
    cur.fetchone.return_value = {"total": 1}
    cur.fetchall.side_effect = [
        [_row()],
        [{"event_id": 7, "user_id": 1, "name": "A", "email": "a@example.com"}],
    ]

    events, total = event_model.list_events(cur)

    assert total == 1
    assert events[0]["attendees"] == [{"id": 1, "name": "A", "email": "a@example.com"}]
    assert events[0]["availableSeats"] == 1


def test_find_event_by_id_missing():
    cur = MagicMock()
    cur.fetchone.return_value = None
    assert event_model.find_event_by_id(cur, 1) is None


def test_lock_event_uses_row_lock():
    cur = MagicMock()
    cur.fetchone.return_value = {"event_id": 1, "organizer_id": 2, "capacity": 3}

    assert event_model.lock_event(cur, 1)["capacity"] == 3
    assert "FOR UPDATE" in cur.execute.call_args.args[0]


def test_create_event_sets_organizer():
    cur = MagicMock()
    cur.fetchone.return_value = {"event_id": 11}

    event_id = event_model.create_event(cur, {"title": "T", "capacity": 3}, organizer_id=4)

    assert event_id == 11
    sql, params = cur.execute.call_args.args
    assert "(title, capacity, organizer_id)" in sql
    assert params == ["T", 3, 4]


# --- USER VALIDATION ---
def test_validate_registration_normalises():
    fields = user_model.validate_registration({
        "name": "  Ada  ",
        "email": " ADA@Example.COM ",
        "password": "secret1",
    })
    assert fields == {"name": "Ada", "email": "ada@example.com", "password": "secret1"}


def test_clean_name_too_long():
    with pytest.raises(ValidationError):
        user_model.clean_name("x" * 51)


def test_serialize_user_has_no_password():
    user = user_model.serialize_user({
        "user_id": 1,
        "name": "Ada",
        "email": "ada@example.com",
        "role": "user",
        "password_hash": "secret",
    })
    assert "password_hash" not in user
    assert user["id"] == 1


def test_find_user_by_id_excludes_password():
    cur = MagicMock()
    cur.fetchone.return_value = None

    assert user_model.find_user_by_id(cur, 1) is None
    assert "password_hash" not in cur.execute.call_args.args[0]
