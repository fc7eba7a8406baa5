"""
Shared exceptions for AI service modules.
"""


class AIServiceError(Exception):
    """Raised when AI service operations fail."""

    pass


class LLMCallError(AIServiceError):
    """Raised when the LLM provider call fails (transport, status, rate limit)."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        self.message = message
        if status_code is not None:
            super().__init__(f"LLM API error ({status_code}): {message}")
        else:
            super().__init__(f"LLM API error: {message}")


class MalformedResponseError(AIServiceError):
    """Raised when the model output violates the extraction output contract."""

    def __init__(self, message: str, excerpt: str | None = None):
        self.excerpt = excerpt
        if excerpt is not None:
            message = f"{message}. Response: {excerpt}"
        super().__init__(message)
