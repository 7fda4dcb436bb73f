import logging

from pathlib import Path

from pyhocon import ConfigFactory
from schema import Schema, SchemaError, And, Or, Use, Optional as Opt
from deepmerge import always_merger as merger

from . import ConfigError
from .context import ServiceContext, VARIANTS

logger = logging.getLogger(__name__)

_Port = And(Use(int), lambda n: 0 < n < 65536)
_NonEmpty = And(str, len)

_DIRECTORY_SCHEMA = Or(
    {
        'type': 'static',
        Opt('nodes', default=[]): [{
            'name': _NonEmpty,
            'address': _NonEmpty
        }],
        Opt('page_size'): And(Use(int), lambda n: n > 0),
    },
    {
        'type': 'fabric',
        'url': _NonEmpty,
        Opt('api_version', default='6.0'): _NonEmpty,
        Opt('timeout', default=10.0): And(Use(float), lambda t: t > 0),
    },
    {
        'type': 'cloud',
        'credentials_file': _NonEmpty,
        'zone': _NonEmpty,
        Opt('name_prefix', default=''): str,
    },
)

_CONFIG_SCHEMA = Schema(
    {
        'variant': Or(*VARIANTS),
        'code_dir': _NonEmpty,
        'config_dir': _NonEmpty,
        'work_dir': _NonEmpty,
        Opt('executable', default='redis-server'): _NonEmpty,
        Opt('control_port'): _Port,
        Opt('target_port', default=6379): _Port,
        Opt('shutdown_timeout', default=5.0): And(Use(float), lambda t: t > 0),
        Opt('directory', default={'type': 'static', 'nodes': []}):
            _DIRECTORY_SCHEMA,
        Opt('listen'): {
            Opt('host', default='0.0.0.0'): _NonEmpty,
            'port': _Port
        },
        Opt('log_level', default='INFO'):
            Or('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'),
    }
)


def _parse_hocon(text):
    return ConfigFactory.parse_string(text).as_plain_ordered_dict()


class ServiceConfig(dict):
    def __init__(self, base_dir: Path, kvs):
        self.base_dir = base_dir
        self.update(kvs)

    @staticmethod
    def try_load_file(path: Path, parse=_parse_hocon):
        if not path.exists():
            return None
        try:
            return parse(path.read_text())
        except Exception as e:
            raise ConfigError(f'Could not parse "{path}"') from e

    @classmethod
    def load(cls, *paths: Path, overrides=None):
        base_dir, kvs = None, {}
        for p in paths:
            _kvs = cls.try_load_file(p)
            if _kvs is None:
                logger.debug('Configuration file %s not present', p)
                continue
            logger.debug('Loaded configuration file %s', p)
            if base_dir is None:
                base_dir = p.parent
            kvs = merger.merge(kvs, dict(_kvs))
        if base_dir is None:
            raise ConfigError(
                'No configuration file found. Tried:\n' +
                '\n'.join(['  {}'.format(p) for p in paths])
            )
        if overrides:
            kvs = merger.merge(kvs, overrides)
        try:
            kvs = _CONFIG_SCHEMA.validate(kvs)
        except SchemaError as e:
            raise ConfigError('Invalid configuration') from e
        return cls(base_dir, kvs)

    @classmethod
    def load_dir(cls, conf_dir: Path, override_dir: Path = None, **kwargs):
        return cls.load(
            conf_dir / 'service.conf',
            (override_dir or conf_dir) / 'service.override.conf', **kwargs
        )

    def _path(self, key) -> Path:
        p = Path(self[key]).expanduser()
        if not p.is_absolute():
            p = self.base_dir / p
        return p

    @property
    def variant(self):
        return VARIANTS[self['variant']]

    @property
    def listen(self):
        return self.get('listen')

    def to_context(self) -> ServiceContext:
        return ServiceContext(
            variant=self.variant,
            code_dir=self._path('code_dir'),
            config_dir=self._path('config_dir'),
            work_dir=self._path('work_dir'),
            executable=self['executable'],
            control_port=self.get('control_port'),
            target_port=self['target_port'],
            shutdown_timeout=self['shutdown_timeout'],
        )
