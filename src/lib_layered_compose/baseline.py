"""Vendor baseline layer.

Position 0 of every plan unless the application names another baseline. It
only carries configuration defaults; routes and services always come from
providers and the application.
"""

from __future__ import annotations

CONFIG_HTTP = {
    "app": {"debug": False, "locale": "en", "timezone": "UTC"},
    "http": {"host": "127.0.0.1", "port": 8000, "trusted_proxies": []},
}

CONFIG_CLI = {
    "app": {"debug": False, "locale": "en", "timezone": "UTC"},
    "cli": {"color": True, "verbosity": 0},
}
