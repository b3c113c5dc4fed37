"""
API route handlers.
"""

from api.routes.submissions import router as submissions_router
from api.routes.email_rules import router as email_rules_router
from api.routes.templates import router as templates_router
from api.routes.forms import router as forms_router
from api.routes.email_logs import router as email_logs_router

__all__ = [
    "submissions_router",
    "email_rules_router",
    "templates_router",
    "forms_router",
    "email_logs_router",
]
