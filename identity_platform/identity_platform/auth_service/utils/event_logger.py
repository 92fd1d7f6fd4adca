"""
Logging setup and auth event logging.
"""
import sys
import logging
import os

from ..config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s:%(message)s"

logger = logging.getLogger(__name__)


ALLOWED_EVENT_TYPES = {
    "register",
    "login_success",
    "login_failure",
    "token_refresh",
    "logout",
    "password_change",
    "profile_update",
}


def configure_logging(settings: Settings) -> None:
    """
    Configure stdout logging, plus a file handler when LOG_DIR is set.

    A file handler that cannot be created is reported on stderr and skipped.
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if settings.LOG_DIR:
        try:
            os.makedirs(settings.LOG_DIR, exist_ok=True)
            handlers.append(logging.FileHandler(os.path.join(settings.LOG_DIR, "auth_events.log")))
        except OSError as e:
            print(f"WARNING: Could not set up file logging: {e}", file=sys.stderr)

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )


def log_auth_event(event_type: str, user_id: str, username: str, **metadata) -> None:
    """
    Log an authentication event.

    Args:
        event_type: One of ALLOWED_EVENT_TYPES
        user_id: Id of the user the event concerns
        username: Username (or the submitted identifier for failed logins)
        **metadata: Extra key=value context appended to the log line

    Raises:
        ValueError: If event_type is invalid
    """
    if event_type not in ALLOWED_EVENT_TYPES:
        raise ValueError(
            f"Invalid event_type '{event_type}'. Must be one of: {', '.join(sorted(ALLOWED_EVENT_TYPES))}"
        )

    extra = "".join(f" {key}={value}" for key, value in sorted(metadata.items()))
    logger.info("AUTH %s user_id=%s username=%s%s", event_type, user_id, username, extra)
