from __future__ import annotations
import os

SAUCE_USERNAME = os.environ.get("SAUCE_USERNAME")
SAUCE_ACCESS_KEY = os.environ.get("SAUCE_ACCESS_KEY")
SAUCE_API_URL = os.environ.get("SAUCE_API_URL", "https://saucelabs.com")
SAUCE_CONNECT_BINARY = os.environ.get("SAUCE_CONNECT_BINARY", "sc")
TUNNEL_STARTUP_TIMEOUT = float(os.environ.get("SAUCE_TUNNEL_STARTUP_TIMEOUT", "120"))
TUNNEL_SHUTDOWN_TIMEOUT = float(os.environ.get("SAUCE_TUNNEL_SHUTDOWN_TIMEOUT", "30"))
HTTP_TIMEOUT = float(os.environ.get("SAUCE_HTTP_TIMEOUT", "60"))
