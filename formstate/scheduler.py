"""
Revalidation scheduling.

Every set() stamps the patched field with a new edit id and arms a
trailing-edge debounce timer carrying a (field, generation) token. Arming a
timer cancels the one before it. When a timer fires, its token is compared
with the latest generation recorded for that field and discarded if a newer
edit has been recorded since, so a superseded edit never overwrites the
result of a newer one.

Timers come from a timer factory: a callable (delay_seconds, fn) returning a
handle with cancel(), or None when nothing was armed. The default binds to
the running asyncio event loop. Without a running loop the edit stays
pending until flush() is called.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], Any]


@dataclass(frozen=True)
class EditToken:
    """Identifies one edit of one field."""
    field_name: str
    generation: int


def asyncio_timer(delay_seconds: float, fn: Callable[[], None]) -> Optional[asyncio.TimerHandle]:
    """Arm fn on the running event loop, if there is one."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.debug('No running event loop; debounced validation waits for flush()')
        return None
    return loop.call_later(delay_seconds, fn)


class DebounceScheduler:
    """Trailing-edge debounce with last-edit-wins tokens."""

    def __init__(self, delay_ms: int, callback: Callable[[str], None],
                 timer_factory: Optional[TimerFactory] = None):
        self.delay_ms = delay_ms
        self.callback = callback
        self.timer_factory = timer_factory or asyncio_timer
        self._edit_counter = 0
        self._generations: Dict[str, int] = {}
        self._pending: Optional[EditToken] = None
        self._handle: Any = None

    @property
    def pending(self) -> Optional[EditToken]:
        """Token of the armed edit, if any."""
        return self._pending

    def generation_of(self, field_name: str) -> int:
        return self._generations.get(field_name, 0)

    def is_current(self, token: EditToken) -> bool:
        """True if no newer edit of the token's field has been recorded."""
        return self._generations.get(token.field_name) == token.generation

    def schedule(self, field_name: str) -> EditToken:
        """
        Record an edit of field_name and arm the debounce timer for it.

        Args:
            field_name: Field whose value just changed

        Returns:
            The token the armed timer carries
        """
        self._edit_counter += 1
        token = EditToken(field_name, self._edit_counter)
        self._generations[field_name] = token.generation

        self._disarm()
        self._pending = token
        self._handle = self.timer_factory(self.delay_ms / 1000.0, lambda: self._fire(token))
        return token

    def _disarm(self):
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._pending = None

    def _fire(self, token: EditToken):
        if self._pending != token:
            # Cancelled or replaced after the loop queued it
            return

        self._handle = None
        self._pending = None

        if not self.is_current(token):
            logger.debug(f'Discarding stale validation of {token.field_name!r} (generation {token.generation})')
            return

        self.callback(token.field_name)

    def flush(self) -> bool:
        """
        Run the pending validation now.

        Returns:
            True if a pending edit was validated
        """
        token = self._pending
        if token is None:
            return False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._fire(token)
        return True

    def cancel(self):
        """Disarm the pending timer without running it."""
        self._disarm()
