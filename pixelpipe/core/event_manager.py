# Listener registry and synchronous event dispatcher.

import itertools
import logging
import threading
import time
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pixelpipe.core.events import Event, EventListener, ListenerRegistration
from pixelpipe.core.logging import log_dispatch
from pixelpipe.core.request import ImageRequest
from pixelpipe.core.response import ImageResponse
from pixelpipe.exceptions import ListenerRegistrationError

logger = logging.getLogger(__name__)


class EventManager:
    """Holds listener registrations per event name and dispatches events to them.

    Listeners for an event run one after another in descending priority order;
    listeners sharing a priority run in the order they were registered. After
    each listener the event's propagation flag is checked, and dispatch ends as
    soon as a listener has stopped propagation.

    Registrations are expected to be made at startup. Each registration
    publishes a new sorted tuple for its event, so a dispatch that is already
    running keeps the listeners it started with. Dispatch never mutates
    the registry, so a single manager can serve concurrent requests.
    """

    def __init__(self) -> None:
        # Each event maps to an immutable, already sorted tuple. register() swaps in
        # a new tuple, so a dispatch in progress keeps iterating the one it fetched.
        self._registrations: Dict[str, Tuple[ListenerRegistration, ...]] = {}
        self._lock = threading.Lock()
        self._sequence = itertools.count()

    def register(self, event_name: str, priority: int, listener: EventListener) -> ListenerRegistration:
        """Registers a listener for an event.

        The same listener may be registered for several events or several
        priorities.

        Args:
            event_name: The name of the event to listen for.
            priority: Integer priority. Higher values run first.
            listener: A callable accepting the Event, or an object with a
                ``handle(event)`` method.

        Returns:
            The created registration.

        Raises:
            ListenerRegistrationError: If any argument is malformed.
        """
        if not isinstance(event_name, str) or not event_name.strip():
            raise ListenerRegistrationError(f"Event name must be a non-empty string, got {event_name!r}")
        # bool is an int subclass but never a meaningful priority
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ListenerRegistrationError(
                f"Priority for '{event_name}' must be an integer, got {type(priority).__name__}"
            )
        if not callable(listener) and not callable(getattr(listener, "handle", None)):
            raise ListenerRegistrationError(
                f"Listener for '{event_name}' must be callable or expose a handle(event) method"
            )

        with self._lock:
            registration = ListenerRegistration(
                event_name=event_name,
                priority=priority,
                listener=listener,
                order=next(self._sequence),
            )
            self._registrations[event_name] = tuple(
                sorted(
                    (*self._registrations.get(event_name, ()), registration),
                    key=lambda r: (-r.priority, r.order),
                )
            )
        logger.debug(f"Registered {registration.listener_name} for '{event_name}' at priority {priority}")
        return registration

    def add_subscriber(self, subscriber: Any) -> List[ListenerRegistration]:
        """Registers every listener method a subscriber object declares.

        The subscriber must implement ``get_subscribed_events()`` returning a
        mapping of event name to ``{method_name: priority}``.

        Raises:
            ListenerRegistrationError: If the subscriber or any declared method is invalid.
        """
        get_subscribed_events = getattr(subscriber, "get_subscribed_events", None)
        if not callable(get_subscribed_events):
            raise ListenerRegistrationError(
                f"{subscriber.__class__.__name__} does not implement get_subscribed_events()"
            )

        subscribed: Mapping[str, Mapping[str, int]] = get_subscribed_events()
        created = []
        for event_name, methods in subscribed.items():
            for method_name, priority in methods.items():
                method = getattr(subscriber, method_name, None)
                if method is None:
                    raise ListenerRegistrationError(
                        f"{subscriber.__class__.__name__} subscribes '{event_name}' "
                        f"to missing method '{method_name}'"
                    )
                created.append(self.register(event_name, priority, method))
        return created

    def get_registrations(self, event_name: str) -> List[ListenerRegistration]:
        """Returns a copy of the registrations for an event, in dispatch order."""
        return list(self._registrations.get(event_name, ()))

    def has_listeners(self, event_name: str) -> bool:
        return bool(self._registrations.get(event_name))

    @property
    def listener_count(self) -> int:
        """Total number of registrations across all events."""
        return sum(len(r) for r in self._registrations.values())

    def dispatch(
        self,
        event_name: str,
        request: ImageRequest,
        response: ImageResponse,
        arguments: Optional[Dict[str, Any]] = None,
    ) -> Event:
        """Creates an Event and runs the listeners registered for it.

        Args:
            event_name: The name of the event to dispatch.
            request: The request context shared with every listener.
            response: The response context shared with every listener.
            arguments: Optional extra data attached to the event.

        Returns:
            The Event after the last listener that ran.

        Raises:
            Exception: Whatever a listener raises, unchanged. Remaining
                listeners are not invoked.
        """
        event = Event(name=event_name, request=request, response=response, arguments=dict(arguments or {}))
        registrations = self._registrations.get(event_name, ())

        for registration in registrations:
            start = time.perf_counter()
            try:
                registration.invoke(event)
            except Exception as e:
                log_dispatch(
                    event_name,
                    registration.listener_name,
                    "error",
                    duration=time.perf_counter() - start,
                    error=str(e),
                    details={"error_type": e.__class__.__name__},
                )
                raise
            log_dispatch(event_name, registration.listener_name, "completed", duration=time.perf_counter() - start)

            if event.propagation_stopped:
                logger.debug(f"Propagation of '{event_name}' stopped by {registration.listener_name}")
                break

        return event
