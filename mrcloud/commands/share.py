"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Share command: publish an item and report its public link.
"""

from mrcloud import paths
from mrcloud.commands.base import SpecialCommand, SpecialCommandResult
from mrcloud.exceptions import MrCloudError
from mrcloud.logging_config import get_logger

logger = get_logger(__name__)


class ShareCommand(SpecialCommand):
    """
    Publish the current item, or the item named by the single parameter.

    A parameter starting with '/' is an absolute path; any other parameter
    is relative to the current path. Backslashes count as separators.
    """

    name = "share"
    min_params = 0
    max_params = 1

    def target_path(self) -> str:
        if not self.params:
            return paths.normalize(self.path)
        return paths.combine(self.path, self.params[0])

    async def execute(self) -> SpecialCommandResult:
        path = self.target_path()

        try:
            item = await self.session.get_item(path)
            if item is None:
                return SpecialCommandResult.fail(f"{path} not found")
            url = await self.session.publish(item.home)
        except MrCloudError as e:
            logger.warning("share_failed", path=path, error=str(e))
            return SpecialCommandResult.fail(str(e))

        return SpecialCommandResult.ok(url)
