"""Error taxonomy shared by services, repositories and the web layer."""


class GymError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthenticated(GymError):
    """Missing, invalid or expired credential."""

    status_code = 401


class Unauthorized(GymError):
    """Authenticated, but the role or ownership check failed."""

    status_code = 403


class NotFound(GymError):
    status_code = 404


class ValidationFailed(GymError):
    """Schema or business-rule violation."""

    status_code = 400


class InvalidPlanReference(ValidationFailed):
    """A client payload references a subscription plan that does not exist."""


class DuplicateField(ValidationFailed):
    """A uniqueness constraint was violated."""

    def __init__(self, entity: str, field: str):
        super().__init__(f"{entity} with this {field} already exists")
        self.entity = entity
        self.field = field


class GenerationExhausted(GymError):
    """No free identifier was found within the retry budget."""
