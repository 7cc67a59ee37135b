"""
Core Event Types for the StudyForge EventBus.

Purpose
-------
Type definitions shared by the bus: the event protocol, callback types,
the unsubscribe handle and the immutable listener record.

Design Decisions
----------------
- Events are frozen dataclasses carrying an `event_name` class attribute.
  The bus itself knows nothing about the concrete variants.
- Callbacks may be sync or async; the bus awaits awaitable results.
- EventListener uses slots and is frozen; identifiers are unique per
  subscription so the same callable can be registered more than once.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, ClassVar, Optional, Protocol, Union


class ForgeEvent(Protocol):
    """Anything with an `event_name` can travel on the bus."""

    event_name: ClassVar[str]


# Supports both sync and async callables taking a single event parameter
CallbackType = Union[
    Callable[[Any], Any],
    Callable[[Any], Awaitable[Any]],
]

# Calling it removes the subscription; returns True only the first time.
Unsubscribe = Callable[[], bool]

_identifier_sequence = itertools.count(1)


def event_name_of(event: Any) -> str:
    return getattr(event, "event_name", None) or type(event).__name__


@dataclass(slots=True, frozen=True)
class EventListener:
    """
    A registered event listener.

    Attributes
    ----------
    callback:
        Async or sync callable invoked with the event.
    identifier:
        Unique string identifier used for unsubscription and error logs.
    """

    callback: CallbackType
    identifier: str

    @classmethod
    def from_callback(
        cls,
        callback: CallbackType,
        identifier: Optional[str] = None,
    ) -> EventListener:
        """
        Create an EventListener, deriving an identifier from the callback's
        module and qualified name when none is given.

        Examples
        --------
        >>> def on_level_up(event) -> None:
        ...     pass
        ...
        >>> EventListener.from_callback(on_level_up).identifier
        '__main__.on_level_up#1'
        """
        if identifier is None:
            module = getattr(callback, "__module__", "unknown")
            qualname = getattr(
                callback, "__qualname__", getattr(callback, "__name__", "callback")
            )
            identifier = f"{module}.{qualname}#{next(_identifier_sequence)}"

        return cls(callback=callback, identifier=identifier)
