class AppError(Exception):
    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class InsufficientDataError(AppError):
    """Raised when an analysis needs more observations than it was given."""

    def __init__(self, message: str, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(message, code="INSUFFICIENT_DATA")


class AdapterError(AppError):
    """A collaborator (social search, LLM, price feed) call failed."""

    def __init__(self, adapter: str, message: str):
        self.adapter = adapter
        super().__init__(f"{adapter}: {message}", code="ADAPTER_FAILURE")


class LexiconError(AppError):
    def __init__(self, pattern: str, reason: str):
        super().__init__(f"Invalid lexicon pattern '{pattern}': {reason}", code="LEXICON_CONFIG_ERROR")
