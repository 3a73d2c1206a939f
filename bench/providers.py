import random
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable


def _new_id() -> str:
    return str(uuid.uuid4())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Providers:
    """Sources of ids, wall-clock time, elapsed time and randomness.

    Executors and the orchestrator never call uuid/datetime/random directly so
    a test can pin all four.
    """
    new_id: Callable[[], str] = _new_id
    now: Callable[[], datetime] = _utc_now
    monotonic: Callable[[], float] = time.monotonic
    rng: random.Random = field(default_factory=random.Random)

    def elapsed_ms(self, start: float) -> int:
        return round((self.monotonic() - start) * 1000)
