"""
Errors raised by the submission lifecycle services
"""


class SubmissionError(Exception):
    """Base error; carries the HTTP status used by the blueprints"""
    status_code = 400

    def __init__(self, message=None, **details):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.details = details

    @property
    def code(self):
        return self.__class__.__name__

    def to_dict(self):
        payload = {'success': False, 'error': self.code, 'message': self.message}
        payload.update(self.details)
        return payload


class ValidationError(SubmissionError):
    status_code = 400


class NotFound(SubmissionError):
    status_code = 404


class NotEligible(SubmissionError):
    """Student is not enrolled in the class that owns the assignment"""
    status_code = 403


class NotPublished(SubmissionError):
    status_code = 409


class Closed(SubmissionError):
    """Assignment deadline has passed"""
    status_code = 409


class InvalidState(SubmissionError):
    """Lifecycle transition not allowed from the current status"""
    status_code = 409


class AlreadyFinalized(SubmissionError):
    """Duplicate finalize; details carry the stored score and XP"""
    status_code = 409


class SandboxUnavailable(SubmissionError):
    """Code sandbox could not be reached (network error or timeout)"""
    status_code = 503

    def __init__(self, message=None, timed_out=False, **details):
        super().__init__(message, **details)
        self.timed_out = timed_out


class LedgerInvariantError(RuntimeError):
    """XP projection and ledger diverged; never recovered automatically"""
