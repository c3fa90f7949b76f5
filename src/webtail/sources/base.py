"""Base class for line sources."""

from abc import ABC, abstractmethod

from ..cancel import CancelToken
from ..channel import LineChannel

# One complete record: the bytes of a line without its trailing newline.
Line = bytes


class LineSource(ABC):
    """Abstract base class for line sources."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def run(self, channel: LineChannel, token: CancelToken) -> None:
        """
        Produce lines into ``channel`` until done or ``token`` fires.

        Implementations close the channel on every exit path.
        """

    async def close(self) -> None:
        """Clean up resources."""
        pass
