import asyncio
import functools
import logging, reprlib

from enum import Enum
from typing import Callable, List, Optional

from . import ConfigError
from .context import ServiceContext
from .cluster import (
    ClusterNodeInfo, ClusterTopologyReader, NodeDirectory, create_directory
)
from .process import (
    ConfigMaterializer, ProcessLauncher, SubprocessLauncher,
    GracefulShutdownClient, ShutdownResult
)

logger = logging.getLogger(__name__)


class ServiceState(Enum):
    STARTING = 'starting'
    PREPARING = 'preparing'
    RUNNING = 'running'
    SHUTTING_DOWN = 'shutting-down'
    TERMINATED = 'terminated'


class ServiceRunLoop:
    def __init__(
        self,
        ctx: ServiceContext,
        directory: NodeDirectory = None,
        launcher: ProcessLauncher = None,
        shutdown_client: GracefulShutdownClient = None,
        materializer: ConfigMaterializer = None,
        directory_factory: Callable[[], NodeDirectory] = None
    ):
        self.ctx = ctx
        self.directory = directory
        self.directory_factory = directory_factory
        self.launcher = launcher or SubprocessLauncher()
        self.shutdown_client = shutdown_client or GracefulShutdownClient(
            timeout=ctx.shutdown_timeout
        )
        self.materializer = materializer or ConfigMaterializer(
            ctx.variant.config_name, ctx.target_port
        )
        self.state: Optional[ServiceState] = None
        self.nodes: Optional[List[ClusterNodeInfo]] = None
        self.config_file = None
        self.shutdown_results: List[ShutdownResult] = []
        self.running = asyncio.Event()

    @classmethod
    def from_config(cls, config, **kwargs):
        ctx = config.to_context()
        if (
            ctx.variant.needs_topology and 'directory' not in kwargs and
            'directory_factory' not in kwargs
        ):
            # Built during PREPARING; construction may block on remote auth
            kwargs['directory_factory'] = functools.partial(
                create_directory, config['directory']
            )
        return cls(ctx, **kwargs)

    def _set_state(self, state: ServiceState):
        logger.debug(
            '%s: %s -> %s', self.ctx.variant.name,
            self.state.value if self.state else '-', state.value
        )
        self.state = state

    async def _shutdown(self):
        result = await self.shutdown_client.request_shutdown(
            self.ctx.control_port
        )
        self.shutdown_results.append(result)
        return result

    async def _shutdown_to_completion(self):
        shutdown = asyncio.ensure_future(self._shutdown())
        try:
            await asyncio.shield(shutdown)
        except asyncio.CancelledError:
            # Let the request finish so the teardown one never overlaps it
            await shutdown
            raise

    async def _get_directory(self) -> NodeDirectory:
        if self.directory is None:
            if self.directory_factory is None:
                raise ConfigError(
                    f'Variant "{self.ctx.variant.name}" needs a node directory'
                )
            loop = asyncio.get_running_loop()
            self.directory = await loop.run_in_executor(
                None, self.directory_factory
            )
        return self.directory

    async def _prepare(self):
        nodes = None
        if self.ctx.variant.needs_topology:
            directory = await self._get_directory()
            nodes = await ClusterTopologyReader(directory).discover_nodes()
            self.nodes = nodes
            if logger.isEnabledFor(logging.INFO):
                logger.info(
                    'Initial primary %s, topology: %s',
                    nodes[0].address if nodes else None,
                    reprlib.repr([n.address for n in nodes])
                )
        self.config_file = self.materializer.materialize(
            self.ctx.workdir, self.ctx.template_file, nodes
        )

    async def _wait_for_cancellation(self):
        await asyncio.get_running_loop().create_future()

    async def run(self):
        """One activation: shut down, prepare, launch, idle, shut down.

        Returns only by raising: ``CancelledError`` on deactivation or the
        fault that aborted the activation. The first shutdown request always
        runs to completion, and a second one is sent on every exit.
        """
        self._set_state(ServiceState.STARTING)
        try:
            await self._shutdown_to_completion()

            self._set_state(ServiceState.PREPARING)
            await self._prepare()

            self._set_state(ServiceState.RUNNING)
            self.launcher.launch(
                self.ctx.executable_file, self.ctx.workdir,
                self.ctx.variant.arguments
            )
            logger.info('%s process started', self.ctx.variant.role)
            self.running.set()
            await self._wait_for_cancellation()
        except asyncio.CancelledError:
            logger.info('%s deactivated', self.ctx.variant.role)
            raise
        except Exception:
            logger.error(
                '%s activation failed', self.ctx.variant.role, exc_info=True
            )
            raise
        finally:
            self._set_state(ServiceState.SHUTTING_DOWN)
            self.running.clear()
            await self._shutdown()
            self._set_state(ServiceState.TERMINATED)
