"""Time conversion and logging setup shared by the app, the worker and the CLI."""

import logging
from datetime import datetime, UTC

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ("stripe", "httpx", "arq.connections")


def now_utc() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(UTC)


def from_timestamp(value: int | None) -> datetime | None:
    """Convert a Stripe epoch-seconds timestamp to an aware datetime."""
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=UTC)


def setup_logging(verbose: bool = False) -> None:
    """
    Configure root logging for a billing process.

    Args:
        verbose: DEBUG for everything, including Stripe and HTTP client chatter;
            otherwise INFO for menubill and WARNING for noisy libraries.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)
