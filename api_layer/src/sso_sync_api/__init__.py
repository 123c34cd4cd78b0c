"""sso_sync_api."""

from .monitoring.logger import configure_logger

# Configure logger with default settings (just console logging)
# The application factory reconfigures it from Settings at startup
configure_logger()
