"""Request context management for observability.

Context variables for request tracking across async boundaries.
"""

from contextvars import ContextVar

# Request ID - unique per HTTP request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Account reference (user_refid) being authenticated in this request
user_refid_var: ContextVar[str] = ContextVar("user_refid", default="")

# Portal type (admin/staff/operator) of the current portal request
portal_type_var: ContextVar[str] = ContextVar("portal_type", default="")
