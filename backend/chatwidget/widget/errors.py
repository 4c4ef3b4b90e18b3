class WidgetError(Exception):
    """Base class for errors raised inside the widget engine."""


class TransportError(WidgetError):
    """A request to the chat backend failed or returned something unusable."""


class ConfigLoadError(TransportError):
    """The tenant widget configuration could not be loaded."""


class StorageError(WidgetError):
    """The persistent key/value store is unavailable."""


class InvalidTransition(WidgetError):
    def __init__(self, state, event):
        super().__init__(f"Cannot handle {event.value!r} in state {state.value!r}")
        self.state = state
        self.event = event
