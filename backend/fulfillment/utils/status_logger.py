"""Info log line for every quote and booking status change made through the ORM.

Bulk ``Query.update`` calls bypass attribute events; callers that use them
log their own counts.
"""

import logging

from sqlalchemy import event
from sqlalchemy.orm.attributes import NO_VALUE

from .. import models

logger = logging.getLogger(__name__)

_TRACKED = (models.Quote, models.Booking)
_registered = False


def _label(target) -> str:  # noqa: ANN001
    if isinstance(target, models.Booking):
        return f"Booking {target.booking_id or target.id} (quote {target.parent_quote_id})"
    return f"Quote {target.id}"


def log_status_change(target, value, oldvalue, initiator):  # noqa: ANN001
    if oldvalue is NO_VALUE or oldvalue is None:
        return
    old = getattr(oldvalue, "value", oldvalue)
    new = getattr(value, "value", value)
    if old != new:
        logger.info("%s status %s -> %s", _label(target), old, new)


def register_status_listeners() -> None:
    global _registered
    if _registered:
        return
    for model in _TRACKED:
        event.listen(model.status, "set", log_status_change)
    _registered = True
