"""
Static values shared across services.
No logic lives here: roles, statuses, categories, HTTP codes and field limits.
"""

HTTP_STATUS = {
    "OK": 200,
    "CREATED": 201,
    "BAD_REQUEST": 400,
    "UNAUTHORIZED": 401,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "INTERNAL_SERVER_ERROR": 500,
}

# --- USERS ---
ROLE_USER = "user"
ROLE_ADMIN = "admin"
USER_ROLES = [ROLE_USER, ROLE_ADMIN]

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6

# --- EVENTS ---
STATUS_UPCOMING = "upcoming"
EVENT_STATUSES = [STATUS_UPCOMING, "ongoing", "completed", "cancelled"]

EVENT_CATEGORIES = [
    "Conference",
    "Workshop",
    "Seminar",
    "Meetup",
    "Webinar",
    "Concert",
    "Sports",
    "Other",
]

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 100
DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 1000
CAPACITY_MIN = 1
CAPACITY_MAX = 10000

# --- AUTH / PAGINATION ---
TOKEN_EXPIRATION_DAYS_DEFAULT = 7

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
