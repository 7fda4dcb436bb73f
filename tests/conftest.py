"""
Pytest fixtures shared by the rservice tests.
"""

import socket

import pytest

from rservice.context import ServiceContext, DEFAULT, SENTINEL

from tests.fakes import TEMPLATE


@pytest.fixture
def free_port():
    """A loopback port that nothing listens on."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(('127.0.0.1', 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def config_dir(tmp_path):
    conf = tmp_path / 'config'
    (conf / 'redis').mkdir(parents=True)
    (conf / 'sentinel').mkdir(parents=True)
    (conf / 'redis' / 'default.conf').write_bytes(b'port 6379\n')
    (conf / 'sentinel' / 'sentinel.conf').write_bytes(TEMPLATE)
    return conf


@pytest.fixture
def template_file(config_dir):
    return config_dir / 'sentinel' / 'sentinel.conf'


@pytest.fixture
def sentinel_ctx(tmp_path, config_dir):
    return ServiceContext(
        variant=SENTINEL,
        code_dir=tmp_path / 'code',
        config_dir=config_dir,
        work_dir=tmp_path / 'work',
    )


@pytest.fixture
def default_ctx(tmp_path, config_dir):
    return ServiceContext(
        variant=DEFAULT,
        code_dir=tmp_path / 'code',
        config_dir=config_dir,
        work_dir=tmp_path / 'work',
    )
