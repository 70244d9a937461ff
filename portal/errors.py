"""Error taxonomy for the advance portal

Every error a caller can see is a ``PortalError``. Its ``message`` is safe to
send to the browser; anything more detailed stays in the server log.
"""


class PortalError(Exception):
    """Base class for failures reported in the JSON envelope"""
    default_message = 'Request failed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(PortalError):
    default_message = 'Authentication required'


class ValidationError(PortalError):
    default_message = 'Required fields are missing'


class NotFound(PortalError):
    default_message = 'Record not found'


class EmployeeNotFound(NotFound):
    default_message = 'Employee ID not found'


class NotActive(NotFound):
    default_message = 'Active borrower not found'


class DuplicateKey(PortalError):
    default_message = 'Record already exists'


class DuplicateApplicationNo(DuplicateKey):
    default_message = 'Application number already exists'


class InvalidTransition(PortalError):
    default_message = 'Status change not allowed'


class DatabaseError(PortalError):
    default_message = 'Database error occurred'


class ServerError(PortalError):
    default_message = 'Server error occurred'


# Substrings reported by MySQL, PostgreSQL and SQLite drivers, most specific first
DB_ERROR_PATTERNS = [
    (('duplicate entry', 'unique constraint', 'duplicate key'),
     'Duplicate record: one of the rows repeats an existing ID or application number'),
    (('foreign key',),
     'Referenced employee does not exist'),
    (('data too long', 'value too long', 'string data, right truncated'),
     'A text value is longer than the column allows'),
    (('incorrect date', 'invalid date', 'date/time field value out of range'),
     'A date value is not valid'),
    (('incorrect decimal', 'out of range value', 'numeric field overflow', 'invalid input syntax for type numeric'),
     'A numeric value is not valid'),
    (('gone away', 'lost connection', 'connection refused', 'could not connect', 'server closed the connection'),
     'Database connection lost, please try again'),
    (('lock wait timeout', 'deadlock', 'database is locked'),
     'Database is busy, please try again'),
]


def describe_db_error(exc):
    """Map a driver error onto a one-line message fit for the import dialog"""
    text = str(getattr(exc, 'orig', None) or exc).lower()
    for needles, message in DB_ERROR_PATTERNS:
        if any(needle in text for needle in needles):
            return message
    return DatabaseError.default_message
