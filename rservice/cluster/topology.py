import logging

from typing import List

from . import DirectoryUnavailable
from .common import ClusterNodeInfo
from .directory import NodeDirectory

logger = logging.getLogger(__name__)


class ClusterTopologyReader:
    def __init__(self, directory: NodeDirectory):
        self.directory = directory

    async def _query(self, token):
        try:
            return await self.directory.query_nodes(token)
        except OSError as e:
            raise DirectoryUnavailable('Node directory unreachable') from e

    async def discover_nodes(self) -> List[ClusterNodeInfo]:
        """Collect every node the directory reports, across all pages.

        Pages are concatenated in the order received, without sorting or
        de-duplication. An empty page that still carries a continuation
        token is followed; only a missing token ends the sweep.
        """
        result = []
        page = await self._query(None)
        pages = 1
        while True:
            result.extend(page.nodes)
            if not page.has_more:
                break
            logger.debug(
                'Following continuation token %r', page.continuation_token
            )
            page = await self._query(page.continuation_token)
            pages += 1
        logger.info(
            'Discovered %d cluster nodes in %d pages', len(result), pages
        )
        return result
