class ServiceError(Exception):
    pass


class ConfigError(ServiceError):
    pass

from .context import ServiceVariant, ServiceContext, VARIANTS
from .config import ServiceConfig
from .ctl import ServiceState, ServiceRunLoop
