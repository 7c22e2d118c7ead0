"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

CLI context for MrCloud.

Provides shared context object and decorators for CLI commands.
"""

import click

from mrcloud.cloud import CloudSession


# Context object to share configuration across commands
class CLIContext:
    """Context object for CLI commands."""

    def __init__(self, adapter=None):
        self.config = None
        self.config_path = None
        self.verbose = False
        # Transport override, used instead of the configured backend
        self.adapter = adapter

    def open_session(self) -> CloudSession:
        return CloudSession.from_config(self.config, adapter=self.adapter)


pass_context = click.make_pass_decorator(CLIContext, ensure=True)
