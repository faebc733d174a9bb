"""Interface to the host's web rendering surface."""

from abc import ABC, abstractmethod


class RenderSurface(ABC):
    """A stateful HTML view that can load documents and run scripts.

    Only one load/measure cycle may be in flight on an instance at a time.
    The host is expected to forward navigation requests raised by the view
    to :meth:`reflow_reader.core.session.ReaderSession.on_navigating` and to
    cancel them when it returns True.
    """

    @abstractmethod
    async def load_html(self, html: str) -> bool:
        """Render ``html`` and wait for the navigation-complete signal.

        Returns True when the host reports a successful load.
        """

    @abstractmethod
    async def evaluate(self, script: str) -> str:
        """Evaluate a script expression and return its textual result."""
