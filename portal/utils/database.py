"""Transaction helpers"""
from contextlib import contextmanager
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from portal import db
from portal.errors import DatabaseError, PortalError, describe_db_error


@contextmanager
def atomic(operation, classify=False):
    """Commit everything done inside the block, or nothing

    Business failures (``PortalError``) roll back and propagate unchanged.
    Store faults roll back, are logged with their traceback and come out as
    ``DatabaseError``; with ``classify`` the message names the kind of fault,
    otherwise it stays generic.
    """
    try:
        yield db.session
        db.session.commit()
    except PortalError:
        db.session.rollback()
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception('%s failed', operation)
        message = describe_db_error(e) if classify else DatabaseError.default_message
        raise DatabaseError(message) from e
