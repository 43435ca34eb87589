"""pyreserva - Async Python client data layer for the restaurant reservation services."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyreserva")
except PackageNotFoundError:
    __version__ = "0+local"
from pyreserva.booking import BookingMachine, BookingState, ReservationDraft
from pyreserva.cache import QueryCache, QueryOptions, QueryStatus, QuerySubscription, make_query_key
from pyreserva.client import ReservaClient
from pyreserva.config import ReservaConfig
from pyreserva.exceptions import (
    BookingStateError,
    ErrorKind,
    ReservaAuthenticationError,
    ReservaAuthorizationError,
    ReservaConfigError,
    ReservaConflictError,
    ReservaError,
    ReservaNotFoundError,
    ReservaProtocolError,
    ReservaRegistrationIncompleteError,
    ReservaSessionExpiredError,
    ReservaStorageError,
    ReservaTransportError,
    ReservaValidationError,
)
from pyreserva.models import (
    CreateReservationRequest,
    Identity,
    MealType,
    RegisterProfile,
    Reservation,
    ReservationStatus,
    Role,
    SearchPage,
    SearchParams,
    TableAvailability,
    TableRef,
    UpdateReservationRequest,
)
from pyreserva.mutations import INVALIDATION_EDGES, MutationCoordinator, MutationKind
from pyreserva.notices import Notice, NoticeLevel
from pyreserva.session import Session, SessionStore
from pyreserva.storage import FileSessionStorage, MemorySessionStorage, SessionStorage

__all__ = [
    "__version__",
    "BookingMachine",
    "BookingState",
    "BookingStateError",
    "CreateReservationRequest",
    "ErrorKind",
    "FileSessionStorage",
    "INVALIDATION_EDGES",
    "Identity",
    "MealType",
    "MemorySessionStorage",
    "MutationCoordinator",
    "MutationKind",
    "Notice",
    "NoticeLevel",
    "QueryCache",
    "QueryOptions",
    "QueryStatus",
    "QuerySubscription",
    "RegisterProfile",
    "ReservaAuthenticationError",
    "ReservaAuthorizationError",
    "ReservaClient",
    "ReservaConfig",
    "ReservaConfigError",
    "ReservaConflictError",
    "ReservaError",
    "ReservaNotFoundError",
    "ReservaProtocolError",
    "ReservaRegistrationIncompleteError",
    "ReservaSessionExpiredError",
    "ReservaStorageError",
    "ReservaTransportError",
    "ReservaValidationError",
    "Reservation",
    "ReservationDraft",
    "ReservationStatus",
    "Role",
    "SearchPage",
    "SearchParams",
    "Session",
    "SessionStorage",
    "SessionStore",
    "TableAvailability",
    "TableRef",
    "UpdateReservationRequest",
    "make_query_key",
]
