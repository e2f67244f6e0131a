"""Error taxonomy shared by the game core, the document store and the API.

Each error carries the HTTP status and a short machine code so the
blueprint can render it without knowing every subclass.
"""


class CookoffError(Exception):
    """Base class for every error raised by the cook-off backend."""
    status_code = 400
    code = 'error'

    def __init__(self, message: str = ''):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class ValidationError(CookoffError):
    """Malformed command input."""
    status_code = 400
    code = 'validation_error'


class NotFoundError(CookoffError):
    """Referenced session or participant does not exist."""
    status_code = 404
    code = 'not_found'


class InvalidTransitionError(CookoffError):
    """Command is not allowed in the current phase."""
    status_code = 409
    code = 'invalid_transition'

    def __init__(self, message: str = '', phase=None):
        self.phase = phase
        super().__init__(message)

    def to_dict(self):
        payload = super().to_dict()
        if self.phase is not None:
            payload['phase'] = getattr(self.phase, 'value', self.phase)
        return payload


class LastChefError(CookoffError):
    """Cannot remove the only remaining chef while judges are registered."""
    status_code = 409
    code = 'last_chef'


class ConflictError(CookoffError):
    """A transactional write could not be applied after repeated contention."""
    status_code = 409
    code = 'conflict'

    def __init__(self, message: str = '', attempts: int = 0):
        self.attempts = attempts
        super().__init__(message)


class TransportError(CookoffError):
    """The backing document store is unreachable."""
    status_code = 503
    code = 'transport_error'
