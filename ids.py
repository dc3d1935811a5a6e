import secrets
from datetime import datetime, timezone
from typing import Callable


class IdGenerator:
    """Sortable ids like ``ORD-20240615093012123-9F2C1A``.

    The millisecond UTC timestamp keeps ids ordered by creation; the random
    suffix makes same-millisecond collisions unlikely. Unique indexes in the
    store remain the final guard.
    """

    def __init__(self, prefix: str, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.prefix = prefix
        self._clock = clock

    def __call__(self) -> str:
        stamp = self._clock().strftime("%Y%m%d%H%M%S%f")[:-3]
        return f"{self.prefix}-{stamp}-{secrets.token_hex(3).upper()}"


account_ids = IdGenerator("USR")
order_ids = IdGenerator("ORD")
review_ids = IdGenerator("REV")
product_ids = IdGenerator("P")
