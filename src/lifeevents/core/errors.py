class EngineError(Exception):
    """Base class for everything the event engine raises."""
    pass


class InvalidReference(EngineError):
    """Raised when an event id is not in the active set."""

    def __init__(self, event_id: int):
        super().__init__(f"Event {event_id} is not active (resolved, expired or unknown).")
        self.event_id = event_id


class InvalidChoiceIndex(EngineError):
    """Raised when a choice index is out of range for the event."""

    def __init__(self, event_id: int, choice_index: int, choice_count: int):
        super().__init__(
            f"Choice {choice_index} is out of range for event {event_id} ({choice_count} choices)."
        )
        self.event_id = event_id
        self.choice_index = choice_index
        self.choice_count = choice_count


class PersistenceFailure(EngineError):
    """Raised by stores when a load or save fails."""
    pass


class ConfigurationError(EngineError):
    """Raised when catalog or engine data is malformed."""
    pass
