"""
Shared module for the workflow coordinator.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging
  - constants.py: Roles, workstations, plans, statuses, storage keys

- shared.infrastructure: Persistence and change notification
  - store/backends.py: In-memory, SQL (SQLAlchemy) and Redis key/value backends
  - store/session_store.py: JSON session store with soft-fail reads
  - events/bus.py: Change bus (local and Redis pub/sub)

- shared.security: PIN verification (bcrypt), login rate limiting (slowapi)

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - schemas.py: Domain records and request/response schemas

IMPORT EXAMPLES:
    from shared.config.settings import settings
    from shared.config.constants import Roles, StorageKeys
    from shared.infrastructure.store import SessionStore, InMemoryBackend
    from shared.infrastructure.events import LocalChangeBus, CASH_SESSIONS_CHANGED
    from shared.utils.exceptions import AlreadyOpenError, NotFoundError
"""
