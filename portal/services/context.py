"""Request-scoped caller identity"""
from flask import request, has_request_context
from flask_login import current_user
from portal import db
from portal.errors import Unauthenticated
from portal.models import ActivityLog


class RequestContext:
    """Who a service operation runs for

    Built once per request from the Flask-Login session and passed explicitly
    into every service call.
    """

    def __init__(self, user, ip_address=None, user_agent=None):
        if user is None:
            raise Unauthenticated()
        self.user = user
        self.ip_address = ip_address
        self.user_agent = user_agent

    @classmethod
    def from_request(cls):
        if not current_user.is_authenticated:
            raise Unauthenticated()
        user = current_user._get_current_object()
        if has_request_context():
            return cls(user, request.remote_addr, request.user_agent.string)
        return cls(user)

    @property
    def user_id(self):
        return self.user.id

    def log(self, action, entity_type=None, entity_id=None, description=None):
        """Add an audit entry to the current transaction"""
        entry = ActivityLog(
            user_id=self.user.id,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            description=description,
            ip_address=self.ip_address,
            user_agent=(self.user_agent or '')[:255] or None
        )
        db.session.add(entry)
        return entry
