"""
MediaLibrary - Access to the remote media library (XMMS2 medialib).

- MediaLibraryClient: what the sync engine needs from a library
- Xmms2Client: implementation on top of the XMMS2 Python bindings
"""

from .client import (
    MediaLibraryClient,
    MediaLibraryError,
    QuerySyntaxError,
    Xmms2Client,
    flatten_propdict,
)

__all__ = [
    "MediaLibraryClient",
    "MediaLibraryError",
    "QuerySyntaxError",
    "Xmms2Client",
    "flatten_propdict",
]
