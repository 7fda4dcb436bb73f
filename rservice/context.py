from pathlib import Path
from dataclasses import dataclass
from typing import Optional

REDIS_SERVER_PORT = 6379
SENTINEL_PORT = 26379


@dataclass(frozen=True)
class ServiceVariant:
    name: str
    role: str
    template: str
    config_name: str
    arguments: str
    control_port: int
    needs_topology: bool = False
    http_listener: bool = False


DEFAULT = ServiceVariant(
    name='default',
    role='RedisServer',
    template='redis/default.conf',
    config_name='default.conf',
    arguments='default.conf',
    control_port=REDIS_SERVER_PORT,
)

SENTINEL = ServiceVariant(
    name='sentinel',
    role='RedisSentinel',
    template='sentinel/sentinel.conf',
    config_name='sentinel.conf',
    arguments='sentinel.conf --sentinel',
    control_port=SENTINEL_PORT,
    needs_topology=True,
    http_listener=True,
)

VARIANTS = {v.name: v for v in (DEFAULT, SENTINEL)}


@dataclass
class ServiceContext:
    variant: ServiceVariant
    code_dir: Path
    config_dir: Path
    work_dir: Path
    executable: str = 'redis-server'
    control_port: Optional[int] = None
    target_port: int = REDIS_SERVER_PORT
    shutdown_timeout: float = 5.0

    def __post_init__(self):
        if not self.control_port:
            self.control_port = self.variant.control_port

    @property
    def workdir(self) -> Path:
        return self.work_dir / self.variant.role

    @property
    def template_file(self) -> Path:
        return self.config_dir / self.variant.template

    @property
    def config_file(self) -> Path:
        return self.workdir / self.variant.config_name

    @property
    def executable_file(self) -> Path:
        return self.code_dir / self.executable
