from . import admin_endpoints, search_endpoints, session_endpoints, settings_endpoints

__all__ = [
	"search_endpoints",
	"session_endpoints",
	"settings_endpoints",
	"admin_endpoints",
]
