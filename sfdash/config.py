"""
Configuration constants for the Salesforce dashboard service.
Every value can be overridden with an SFDASH_* environment variable.
"""
import os

# API Configuration
API_VERSION = os.getenv("SFDASH_API_VERSION", "58.0")
REQUEST_TIMEOUT_SECONDS = float(os.getenv("SFDASH_REQUEST_TIMEOUT", "30"))

# Deployment polling (2s x 15 attempts ~ 30s budget)
POLL_INTERVAL_SECONDS = float(os.getenv("SFDASH_POLL_INTERVAL", "2"))
POLL_MAX_ATTEMPTS = int(os.getenv("SFDASH_POLL_MAX_ATTEMPTS", "15"))
DELETE_CONTAINERS = os.getenv("SFDASH_DELETE_CONTAINERS", "false").lower() == "true"

# Query limits
APEX_CLASS_LIST_LIMIT = int(os.getenv("SFDASH_APEX_CLASS_LIST_LIMIT", "100"))
LOGIN_HISTORY_DEFAULT_LIMIT = int(os.getenv("SFDASH_LOGIN_HISTORY_LIMIT", "10"))
LOGIN_HISTORY_SINCE = os.getenv("SFDASH_LOGIN_HISTORY_SINCE", "2023-01-01T00:00:00Z")

# Server
HOST = os.getenv("SFDASH_HOST", "127.0.0.1")
PORT = int(os.getenv("SFDASH_PORT", "8000"))
LOG_LEVEL = os.getenv("SFDASH_LOG_LEVEL", "INFO").upper()
