from storydash.services.dashboard import DashboardService
from storydash.services.views import ViewService

__all__ = ["DashboardService", "ViewService"]
