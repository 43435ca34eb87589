"""Internal constants shared across the library."""

from datetime import time

USER_AGENT = "pyreserva"

LOGIN_PATH = "/api/users/login"
REGISTER_PATH = "/api/users/register"
USER_PATH = "/api/users/{user_id}"

RESERVATIONS_PATH = "/api/reservations"
USER_RESERVATIONS_PATH = "/api/reservations/user/{user_id}"
RESERVATION_PATH = "/api/reservations/{reservation_id}"
CONFIRM_RESERVATION_PATH = "/api/reservations/{reservation_id}/confirm"

SEARCH_PATH = "/api/search"
SEARCH_DETAIL_PATH = "/api/search/{availability_id}"
SEARCH_STATS_PATH = "/api/search/stats"
SEARCH_REINDEX_PATH = "/api/search/reindex"

#: Paths that never carry a bearer token and never trigger auth teardown.
AUTH_EXEMPT_PATHS: frozenset[str] = frozenset({LOGIN_PATH, REGISTER_PATH})

#: Durable storage slot names (token, serialized identity).
STORAGE_TOKEN_KEY = "token"
STORAGE_USER_KEY = "user"

DEFAULT_PAGE_SIZE = 6
AVAILABILITY_PAGE_SIZE = 100

MIN_GUESTS = 1
MAX_GUESTS = 20

# Wall-clock time used for a booking when the draft carries none.
DEFAULT_MEAL_TIMES: dict[str, time] = {
    "breakfast": time(9, 0),
    "lunch": time(13, 0),
    "dinner": time(21, 0),
    "event": time(20, 0),
}

# Server messages (HTTP 422) that describe a concurrent state change
# rather than bad input.
CONFLICT_MESSAGE_MARKERS: tuple[str, ...] = (
    "already reserved",
    "already confirmed",
    "already exists",
    "not available",
)
