from .. import ServiceError


class ProcessError(ServiceError):
    pass

from .files import (
    ConfigMaterializer, TemplateMissing, WriteFailed, EmptyTopology,
    quorum_for
)
from .ops import ProcessLauncher, SubprocessLauncher, LaunchFailed
from .control import GracefulShutdownClient, ShutdownResult
