"""Core components of the event pipeline: the event object and listener registrations."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Protocol, Union

if TYPE_CHECKING:
    from pixelpipe.core.request import ImageRequest
    from pixelpipe.core.response import ImageResponse


# Well-known event names fired by the HTTP layer.
IMAGE_GET = "image.get"
IMAGE_HEAD = "image.head"
IMAGE_PUT = "image.put"
IMAGE_DELETE = "image.delete"
RESPONSE_SEND = "response.send"


class Event:
    """A single occurrence of a named operation travelling through the listeners.

    The event borrows the request and response contexts; listeners mutate those
    objects directly. The event itself is created per dispatch and thrown away
    once dispatch returns. Its name and the contexts it points at are fixed at
    creation, only the propagation flag changes.

    Attributes:
        name: The name of the event (e.g., "image.get").
        request: The in-flight request context.
        response: The in-flight response context.
        arguments: Extra data supplied by whoever fired the event.
        propagation_stopped: Whether remaining listeners must be skipped.
    """

    __slots__ = ("_name", "_request", "_response", "_arguments", "_propagation_stopped")

    def __init__(
        self,
        name: str,
        request: "ImageRequest",
        response: "ImageResponse",
        arguments: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._name = name
        self._request = request
        self._response = response
        self._arguments = dict(arguments or {})
        self._propagation_stopped = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def request(self) -> "ImageRequest":
        return self._request

    @property
    def response(self) -> "ImageResponse":
        return self._response

    @property
    def arguments(self) -> Dict[str, Any]:
        return self._arguments

    @property
    def propagation_stopped(self) -> bool:
        return self._propagation_stopped

    def stop_propagation(self) -> None:
        """Prevent any listener registered after the current one from running."""
        self._propagation_stopped = True

    def get_argument(self, key: str, default: Any = None) -> Any:
        return self._arguments.get(key, default)

    def __repr__(self) -> str:
        return f"Event(name={self._name!r}, propagation_stopped={self._propagation_stopped})"


class EventHandler(Protocol):
    """An object that reacts to events through a single ``handle`` method."""

    def handle(self, event: Event) -> None: ...


# A listener is either a plain callable taking the Event or an EventHandler.
EventListener = Union[Callable[[Event], None], EventHandler]


@dataclass(frozen=True)
class ListenerRegistration:
    """A listener bound to an event name at a given priority.

    Attributes:
        event_name: The event the listener reacts to.
        priority: Higher priorities run first.
        listener: The callable or handler object to invoke.
        order: Sequence number used to keep registration order among equal priorities.
    """

    event_name: str
    priority: int
    listener: EventListener
    order: int

    @property
    def listener_name(self) -> str:
        """A readable name for logging."""
        target = self.listener
        owner = getattr(target, "__self__", None)
        if owner is not None:
            return f"{owner.__class__.__name__}.{getattr(target, '__name__', 'handle')}"
        return getattr(target, "__qualname__", None) or target.__class__.__name__

    def invoke(self, event: Event) -> None:
        if callable(self.listener):
            self.listener(event)
        else:
            self.listener.handle(event)
