from .. import ServiceError


class ClusterError(ServiceError):
    pass


class DirectoryUnavailable(ClusterError):
    pass

from .common import ClusterNodeInfo, NodePage
from .directory import (
    NodeDirectory, StaticNodeDirectory, FabricNodeDirectory,
    CloudNodeDirectory, create_directory
)
from .topology import ClusterTopologyReader
