"""Service-level errors. Routes translate these into HTTP status codes."""


class NotFoundError(LookupError):
    """A row the caller asked for does not exist."""


class AIDisabledError(RuntimeError):
    def __init__(self, message: str = "AI features are disabled or no API key is configured"):
        super().__init__(message)


class OutOfBudgetError(RuntimeError):
    def __init__(self, used: int, limit: int):
        self.used = used
        self.limit = limit
        super().__init__(f"Daily token budget exceeded: {used}/{limit} tokens used today")


class LLMResponseError(RuntimeError):
    """The LLM call failed or returned something we cannot use.

    ``kind`` is one of: api, timeout, truncated, empty, invalid_json.
    """

    def __init__(self, kind: str, message: str):
        self.kind = kind
        super().__init__(message)


class SchemaError(ValueError):
    """LLM output parsed as JSON but did not match the expected structure."""
