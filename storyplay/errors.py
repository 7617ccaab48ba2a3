"""Runtime exceptions."""


class StoryplayError(Exception):
    """Base exception for the runtime."""


class NotFoundError(StoryplayError, LookupError):
    """Raised when a section, step or preset id is absent from the story."""


class UnknownActionError(StoryplayError):
    """Raised when an action name has no registered handler."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Action {name!r} not found")


class NavigationLoopError(StoryplayError):
    """Raised when goToSectionScene signals keep redirecting without rendering."""


class StoryValidationError(StoryplayError):
    """Raised when story data fails structural validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Story validation failed with {len(errors)} error(s)")


class ActionPayloadError(StoryplayError, ValueError):
    """Raised when an action payload is missing a required field or has a bad value."""

    def __init__(self, action: str, detail: str):
        self.action = action
        self.detail = detail
        super().__init__(f"Invalid payload for action {action!r}: {detail}")
