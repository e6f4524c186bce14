# Settings package
from orderdesk.settings.modules import AppSettings, IntegrationsSettings, get_app_settings

__all__ = ["get_app_settings", "AppSettings", "IntegrationsSettings"]
