"""Assistant service errors."""


class AssistantError(RuntimeError):
    """Expected assistant service error."""


class ProjectNotFoundError(AssistantError):
    """Raised when the project id does not resolve."""

    def __init__(self, message: str = "Project not found") -> None:
        super().__init__(message)


class ThreadNotFoundError(AssistantError):
    """Raised when an explicit thread id does not exist in the project."""

    def __init__(self, message: str = "Chat thread not found. Please start a new conversation.") -> None:
        super().__init__(message)


class ProviderError(AssistantError):
    """Raised when the language-model provider call fails."""


class ProviderResponseError(ProviderError):
    """Raised when a provider response cannot be parsed into a typed turn."""
