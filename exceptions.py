"""
Custom exceptions for the SchoolDesk service
"""


class SchoolDeskError(Exception):
    """Base exception for SchoolDesk"""
    status_code = 400
    public_message = None

    def __init__(self, message='', **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_message(self):
        """Message safe to show to the API caller"""
        return self.public_message or self.message


class ValidationError(SchoolDeskError):
    """Invalid request payload"""
    status_code = 400


class AuthenticationError(SchoolDeskError):
    """Missing or invalid bearer token"""
    status_code = 401


class AuthorizationError(SchoolDeskError):
    """Caller lacks the required role"""
    status_code = 403


class NotFoundError(SchoolDeskError):
    """Referenced record does not exist"""
    status_code = 404


class ConfigurationError(SchoolDeskError):
    """Required setting (usually a secret) is missing"""
    status_code = 500
    public_message = 'Service is not configured'


class PaymentError(SchoolDeskError):
    """Payment provider rejected the call or was unreachable"""
    status_code = 502
    public_message = 'Payment provider request failed'


class EmailError(SchoolDeskError):
    """Email provider rejected the message or was unreachable"""
    status_code = 502
    public_message = 'Failed to send email'


class PlacesError(SchoolDeskError):
    """Address lookup provider error"""
    status_code = 502
    public_message = 'Address lookup failed'


class DocumentError(SchoolDeskError):
    """Record is missing data required to render a document"""
    status_code = 400


class ExportError(SchoolDeskError):
    """Unsupported export format or malformed export options"""
    status_code = 400


class BulkExportError(SchoolDeskError):
    """A record in a bulk receipt export failed to render"""
    status_code = 400

    def __init__(self, message='', index=None, **details):
        super().__init__(message, index=index, **details)
        self.index = index
