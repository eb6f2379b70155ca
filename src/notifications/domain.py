"""Notifications bounded context — new-title fan-out and queued delivery.

Consumes Catalogue book events, keeps a local listing of books, and when a
book is added fans out one queued notification per interested subscriber.
A pool of queue consumers delivers each notification by email, webhook or
both, retrying through the queue and dead-lettering what cannot be sent.
"""

import structlog
from protean.domain import Domain
from shared.logging import configure_logging

configure_logging(log_file_prefix="notifications")

notifications = Domain(name="notifications")

logger = structlog.get_logger(__name__)
