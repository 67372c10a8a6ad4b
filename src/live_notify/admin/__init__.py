"""Secret-protected administration API: registration, configuration, and store tools."""

from live_notify.admin.router import router

__all__ = ["router"]
