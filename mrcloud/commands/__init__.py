"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Special commands.
"""

from mrcloud.commands.base import SpecialCommand, SpecialCommandResult
from mrcloud.commands.share import ShareCommand

__all__ = [
    "SpecialCommand",
    "SpecialCommandResult",
    "ShareCommand",
]
