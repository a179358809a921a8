"""Vercel serverless function serving the admin ASGI app.

Each cold start builds a fresh container, so in-process caches live only as
long as the function instance.
"""

import sys
from pathlib import Path

_SRC_DIR = str(Path(__file__).resolve().parent.parent / "src")
if _SRC_DIR not in sys.path:
    sys.path.insert(0, _SRC_DIR)

from hemp_admin.api.asgi import app  # noqa: E402

__all__ = ["app"]
