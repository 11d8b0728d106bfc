"""
complyreg Call Context

The host environment supplies two ambient facts to every call: the
authenticated caller and the current block height. Both are carried
explicitly in a CallContext so the registries never read process globals.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass

from .validation import validate_height


@dataclass(frozen=True)
class CallContext:
    """
    Per-call execution context.

    - caller: Authenticated principal issuing the call
    - block_height: Current height, used for every *_date field
    """
    caller: str
    block_height: int

    def __post_init__(self):
        if not isinstance(self.caller, str) or not self.caller:
            raise ValueError("caller must be a non-empty string")
        validate_height(self.block_height, "block_height")


class HeightOracle(ABC):
    """
    Source of the current block height.

    Implementations must never report a height lower than one already
    reported.
    """

    @abstractmethod
    def current(self) -> int:
        pass

    def next_for_call(self) -> int:
        """Height to stamp on a mutating call. Defaults to the current height."""
        return self.current()


class ManualHeightOracle(HeightOracle):
    """Height set explicitly by the caller; used by tests and the demo."""

    def __init__(self, height: int = 0):
        self._height = validate_height(height, "height")
        self._lock = threading.Lock()

    def current(self) -> int:
        return self._height

    def set(self, height: int) -> None:
        height = validate_height(height, "height")
        with self._lock:
            if height < self._height:
                raise ValueError(
                    f"block height cannot decrease ({self._height} -> {height})"
                )
            self._height = height

    def advance(self, blocks: int = 1) -> int:
        with self._lock:
            if blocks < 0:
                raise ValueError("blocks must be non-negative")
            self._height += blocks
            return self._height
