class ComplianceError(Exception):
    """Base error for the reminder subsystem, carries the HTTP status to report"""
    status_code = 500
    default_message = 'Something went wrong, please try again'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ComplianceError):
    status_code = 400
    default_message = 'Invalid request'


class NotFound(ComplianceError):
    status_code = 404
    default_message = 'Not found'


class InvalidToken(NotFound):
    """
    Raised for unknown, consumed, superseded and orphaned tokens alike so a
    public caller cannot tell them apart
    """
    default_message = 'Invalid or expired confirmation link'
