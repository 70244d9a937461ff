"""Business operations behind the API"""
from portal.services.context import RequestContext  # noqa: F401
