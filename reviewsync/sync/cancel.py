# reviewsync Cancellation Tokens
# One token per in-flight write, fired when a newer edit supersedes it

import asyncio

from reviewsync.sync.errors import Cancelled


class CancellationToken:
    """
    Signal that an in-flight write has been superseded.

    Transports may watch the token to abort the request early. The save
    coordinator checks it after the write returns and discards the result
    either way.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        """Check if the token has fired."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Fire the token. Firing twice is harmless."""
        self._event.set()

    async def wait(self) -> None:
        """Wait until the token fires."""
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        """
        Raise if the token has fired.

        Raises:
            Cancelled: If the write was superseded.
        """
        if self.cancelled:
            raise Cancelled("Write superseded by a newer edit")
