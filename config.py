#!/usr/bin/env python3
"""
config.py
=========
Application-wide configuration constants.

Each value can be overridden with a ``ROUTESIM_<NAME>`` environment
variable; :mod:`main` also accepts the server options on the command line.
This module is a thin, import-safe leaf; it never imports from other
project packages.
"""

import os


def _env(name: str, default: str) -> str:
    return os.environ.get(f"ROUTESIM_{name}", default)


# ── Server ───────────────────────────────────────────────────────────────────
HOST: str = _env("HOST", "0.0.0.0")
PORT: int = int(_env("PORT", "3001"))
CORS_ORIGINS: list = [o.strip() for o in _env("CORS_ORIGINS", "*").split(",") if o.strip()]

# ── Simulation defaults ──────────────────────────────────────────────────────
TICK_INTERVAL_MS: int = int(_env("TICK_INTERVAL_MS", "100"))
TICK_INTERVAL_S: float = TICK_INTERVAL_MS / 1000.0
DEFAULT_SPEED: float = float(_env("DEFAULT_SPEED", "1.0"))

# ── Transport ────────────────────────────────────────────────────────────────
# Frames queued for one client before it counts as gone (~25 s of updates).
OUTBOUND_QUEUE_LIMIT: int = int(_env("OUTBOUND_QUEUE_LIMIT", "256"))

# ── Uploads ──────────────────────────────────────────────────────────────────
MAX_UPLOAD_BYTES: int = int(_env("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

# ── Logging ──────────────────────────────────────────────────────────────────
LOG_FILE: str = _env("LOG_FILE", "routesim.log")
LOG_LEVEL: str = _env("LOG_LEVEL", "INFO")
