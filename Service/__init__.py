"""
Service - Remote sync endpoint.

    POST /sync    {"ids": [42, 43]}  →  {"status": "ok", "added": 2}
    GET  /health                     →  {"status": "ok", "tracks": 120}
"""

from .endpoint import create_app, parse_ids, run_service

__all__ = ["create_app", "parse_ids", "run_service"]
