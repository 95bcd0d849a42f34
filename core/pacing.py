import time
from dataclasses import dataclass, field
from typing import Callable


@dataclass
class PacingPolicy:
    """Fixed pause between consecutive upstream requests.

    The sleep function is injectable so callers can pace without waiting on
    the wall clock.
    """
    delay: float = 0.3
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def pace(self) -> None:
        if self.delay > 0:
            self.sleep(self.delay)
