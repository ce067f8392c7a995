"""Docker volume and network steps."""
