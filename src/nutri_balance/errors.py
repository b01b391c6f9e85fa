"""Error taxonomy shared by services, adapters and the API."""


class NutriBalanceError(Exception):
    """Base class for application errors."""


class AuthError(NutriBalanceError):
    """Sign-in, sign-up or sign-out failed."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class AnalysisError(NutriBalanceError):
    """The AI gateway failed or returned unusable output."""


class PersistenceError(NutriBalanceError):
    """A store read or write failed."""


class ValidationError(NutriBalanceError):
    """User input was rejected before reaching any collaborator."""
