"""Domain Event definitions.

Represents significant occurrences within the domain that other parts
of the system might react to. Events are currently dispatched to the
debug log only.
"""

import logging

logger = logging.getLogger(__name__)


def dispatch_event(event: object) -> None:
    """Publishes a domain event. Logged at DEBUG until a real bus exists."""
    logger.debug(f"EVENT: {event}")
