"""Shared constants for the hostroute tools."""

from pathlib import Path

# NGINX layout (Debian/Ubuntu package defaults)
NGINX_DIR = Path("/etc/nginx")
SITES_AVAILABLE = "sites-available"
SITES_ENABLED = "sites-enabled"
NGINX_MAIN_CONF = "nginx.conf"
NGINX_SERVICE = "nginx"

# Let's Encrypt live certificate directory (owned by certbot)
CERTS_ROOT = Path("/etc/letsencrypt/live")

# Ports the front-end proxy must own
HTTP_PORT = 80
HTTPS_PORT = 443

# Audit / state
LOG_DIR = Path("/var/log/hostroute")
AUDIT_JSONL_PATH = LOG_DIR / "audit.jsonl"
STATE_DIR = Path("/var/lib/hostroute")
AUDIT_DB_PATH = STATE_DIR / "audit.db"
REGISTRY_PATH = STATE_DIR / "routes.json"

# External command timeouts (seconds)
COMMAND_TIMEOUT = 120.0
CERTBOT_TIMEOUT = 600.0

# Delays around stopping/starting the proxy (seconds)
PORT_RELEASE_DELAY = 2.0
PORT_VERIFY_DELAY = 3.0

# Suffix format for timestamped backups: <file>.backup.20240131_235959
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
