import abc
import asyncio
import json
import logging

from pathlib import Path
from typing import Dict, Iterable, Optional

import aiohttp

from libcloud.common.exceptions import BaseHTTPError
from libcloud.common.types import LibcloudError
from libcloud.compute.drivers.gce import GCENodeDriver

from . import DirectoryUnavailable
from .common import ClusterNodeInfo, NodePage

logger = logging.getLogger(__name__)


class NodeDirectory(abc.ABC):
    @abc.abstractmethod
    async def query_nodes(self, continuation_token: Optional[str] = None
                          ) -> NodePage:
        """Return one page of cluster nodes.

        The first page is requested with no token. Callers follow the
        returned ``continuation_token`` until a page comes back without one.
        """


class StaticNodeDirectory(NodeDirectory):
    """Fixed node list taken from the service configuration."""

    def __init__(self, nodes: Iterable[ClusterNodeInfo], page_size=None):
        self.nodes = list(nodes)
        self.page_size = page_size

    async def query_nodes(self, continuation_token=None):
        if not self.page_size:
            return NodePage(list(self.nodes))
        try:
            offset = int(continuation_token or 0)
        except ValueError:
            raise DirectoryUnavailable(
                f'Invalid continuation token "{continuation_token}"'
            ) from None
        end = offset + self.page_size
        token = str(end) if end < len(self.nodes) else None
        return NodePage(self.nodes[offset:end], token)


class FabricNodeDirectory(NodeDirectory):
    """Node query of the cluster management REST endpoint."""

    def __init__(self, url: str, api_version='6.0', timeout=10.0):
        self.url = url.rstrip('/')
        self.api_version = api_version
        self.timeout = timeout

    async def query_nodes(self, continuation_token=None):
        params = {'api-version': self.api_version}
        if continuation_token:
            params['ContinuationToken'] = continuation_token
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(
                    self.url + '/Nodes', params=params
                ) as resp:
                    resp.raise_for_status()
                    body = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise DirectoryUnavailable(
                f'Node query against {self.url} failed'
            ) from e
        try:
            nodes = [
                ClusterNodeInfo(item['Name'], item['IpAddressOrFQDN'])
                for item in body.get('Items') or []
            ]
            return NodePage(nodes, body.get('ContinuationToken') or None)
        except (AttributeError, KeyError, TypeError) as e:
            raise DirectoryUnavailable(
                f'Malformed node query response from {self.url}'
            ) from e


class CloudNodeDirectory(NodeDirectory):
    """Compute instances of a Libcloud driver, as a single page."""

    def __init__(self, driver, name_prefix=''):
        self.driver = driver
        self.name_prefix = name_prefix

    @classmethod
    def from_gce_credentials(cls, credentials_file, zone, name_prefix=''):
        try:
            credentials = json.loads(Path(credentials_file).read_text())
        except Exception as e:
            raise DirectoryUnavailable(
                f'Could not read credentials_file = "{credentials_file}"'
            ) from e
        try:
            driver = GCENodeDriver(
                credentials['client_email'],
                credentials_file,
                project=credentials['project_id'],
                datacenter=zone
            )
        except KeyError as e:
            raise DirectoryUnavailable(
                f'Missing {e} in credentials_file = "{credentials_file}"'
            ) from None
        except (LibcloudError, BaseHTTPError, OSError) as e:
            raise DirectoryUnavailable('Could not connect to GCE') from e
        return cls(driver, name_prefix)

    def _to_node_info(self, vm):
        ips = list(vm.private_ips or []) + list(vm.public_ips or [])
        if not ips:
            logger.warning('Instance %s has no address, skipping', vm.name)
            return None
        return ClusterNodeInfo(vm.name, ips[0])

    async def query_nodes(self, continuation_token=None):
        loop = asyncio.get_running_loop()
        try:
            vms = await loop.run_in_executor(None, self.driver.list_nodes)
        except (LibcloudError, BaseHTTPError, OSError) as e:
            raise DirectoryUnavailable('Could not list compute nodes') from e
        nodes = []
        for vm in vms:
            if not vm.name.startswith(self.name_prefix):
                continue
            info = self._to_node_info(vm)
            if info:
                nodes.append(info)
        return NodePage(nodes)


def create_directory(conf: Dict) -> NodeDirectory:
    kind = conf['type']
    if kind == 'static':
        nodes = [ClusterNodeInfo(n['name'], n['address']) for n in conf['nodes']]
        return StaticNodeDirectory(nodes, conf.get('page_size'))
    elif kind == 'fabric':
        return FabricNodeDirectory(
            conf['url'], conf['api_version'], conf['timeout']
        )
    elif kind == 'cloud':
        return CloudNodeDirectory.from_gce_credentials(
            conf['credentials_file'], conf['zone'], conf['name_prefix']
        )
    raise RuntimeError(f'Invalid node directory type "{kind}"')
