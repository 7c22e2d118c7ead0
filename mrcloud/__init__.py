"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

MrCloud Core - Client-side access layer for Mail.ru-style cloud storage.

MrCloud Core provides the authenticated request pipeline, OAuth token
lifecycle and resumable chunked uploads on top of interchangeable HTTP
transports.
"""

from mrcloud._version import __version__

__all__ = ["__version__"]
