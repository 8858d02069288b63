"""PetitionDesk API routers.

- auth: Registration, login and token verification
- petitions: Public submission and tracking
- admin: Administrator petition management
- citizens: A signed-in citizen's own petitions
"""

from petitiondesk.api.routers.admin import router as admin_router
from petitiondesk.api.routers.auth import router as auth_router
from petitiondesk.api.routers.citizens import router as citizens_router
from petitiondesk.api.routers.petitions import router as petitions_router

__all__ = [
    "admin_router",
    "auth_router",
    "citizens_router",
    "petitions_router",
]
