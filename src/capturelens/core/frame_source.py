"""
Boundary to the camera.

The pipeline never opens devices. It consumes an already-initialized source
through the small FrameSource interface below.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from capturelens.core.frame import Frame

logger = logging.getLogger(__name__)


class FrameSource(ABC):
    """
    Abstract base class for anything that can hand out camera frames.

    Subclasses must implement:
    - `is_ready`: True once the underlying device delivers frames
    - `get_frame()`: synchronous snapshot of the current frame

    Device lifecycle (open, close, permissions) belongs to the subclass or
    to whoever constructs it, never to the pipeline.
    """

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """True if get_frame() is expected to return a frame."""
        ...

    @abstractmethod
    def get_frame(self) -> Frame | None:
        """
        Return a snapshot of the current frame.

        Returns None when no frame is available right now; the caller
        decides whether that is an error.
        """
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} ready={self.is_ready}>"


class ArrayFrameSource(FrameSource):
    """
    Frame source backed by in-memory arrays.

    Useful for tests, demos and replaying recorded footage. Frames are
    served in order; with `repeat=True` the sequence loops forever,
    otherwise the source reports not-ready once exhausted.

    Example
    -------
    >>> source = ArrayFrameSource([first_frame, second_frame], repeat=True)
    >>> source.get_frame().width
    640
    """

    def __init__(self, frames: Iterable[Any] = (), repeat: bool = True) -> None:
        self._frames: list[Frame] = [self._as_frame(raw) for raw in frames]
        self._repeat = repeat
        self._next_index = 0
        self._frames_served = 0

    @staticmethod
    def _as_frame(raw_frame: Any) -> Frame:
        if isinstance(raw_frame, Frame):
            return raw_frame
        return Frame.from_array(raw_frame)

    def push_frame(self, raw_frame: Any) -> None:
        """Append a frame to the end of the sequence."""
        self._frames.append(self._as_frame(raw_frame))

    @property
    def is_ready(self) -> bool:
        if not self._frames:
            return False
        return self._repeat or self._next_index < len(self._frames)

    @property
    def frames_served(self) -> int:
        return self._frames_served

    def get_frame(self) -> Frame | None:
        if not self.is_ready:
            logger.debug("ArrayFrameSource has no frame to serve")
            return None

        stored_frame = self._frames[self._next_index % len(self._frames)]
        self._next_index += 1
        if self._repeat:
            self._next_index %= len(self._frames)
        self._frames_served += 1

        # Fresh timestamp per snapshot, like a live camera
        return Frame(pixels=stored_frame.pixels)

    def __repr__(self) -> str:
        return (
            f"<ArrayFrameSource frames={len(self._frames)} "
            f"repeat={self._repeat} served={self._frames_served}>"
        )
