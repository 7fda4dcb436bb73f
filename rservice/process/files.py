import os
import fcntl
import logging

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from ..cluster import ClusterNodeInfo
from ..context import REDIS_SERVER_PORT
from . import ProcessError

logger = logging.getLogger(__name__)

GENERATOR_MARKER = '# Configuration added by rservice'
REWRITE_MARKER = '# Generated by CONFIG REWRITE'


class TemplateMissing(ProcessError):
    pass


class WriteFailed(ProcessError):
    pass


class EmptyTopology(ProcessError):
    pass


def quorum_for(count: int) -> int:
    return 1 if count <= 2 else 2


@dataclass
class ConfigMaterializer:

    config_name: str
    target_port: int = REDIS_SERVER_PORT
    master_name: str = 'default'

    def sentinel_lines(self, nodes: Sequence[ClusterNodeInfo]):
        primary, replicas = nodes[0], nodes[1:]
        quorum = quorum_for(len(nodes))
        lines = [
            GENERATOR_MARKER,
            f'sentinel monitor {self.master_name} {primary.address} '
            f'{self.target_port} {quorum}',
            REWRITE_MARKER,
            f'sentinel config-epoch {self.master_name} 0',
            f'sentinel leader-epoch {self.master_name} 1',
        ]
        for node in replicas:
            lines.append(
                f'sentinel known-slave {self.master_name} {node.address} '
                f'{self.target_port}'
            )
        lines.append('sentinel current-epoch 1')
        return lines

    def _render(self, template: bytes, nodes) -> bytes:
        if nodes is None:
            return template
        generated = ''.join(line + '\n' for line in self.sentinel_lines(nodes))
        try:
            generated = generated.encode('ascii')
        except UnicodeEncodeError as e:
            raise WriteFailed('Generated configuration is not ASCII') from e
        if template and not template.endswith(b'\n'):
            template += b'\n'
        return template + generated

    def _write_locked(self, output_file: Path, data: bytes):
        fd = os.open(output_file, os.O_WRONLY | os.O_CREAT, 0o644)
        with os.fdopen(fd, 'wb') as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            f.truncate(0)
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

    def materialize(
        self,
        workdir: Path,
        template_file: Path,
        nodes: Optional[Sequence[ClusterNodeInfo]] = None
    ) -> Path:
        """Write the working configuration file into ``workdir``.

        Without ``nodes`` the template is copied byte for byte. With
        ``nodes`` the sentinel topology block is appended after the
        template, the first node being the initial primary.
        """
        if nodes is not None and not nodes:
            raise EmptyTopology('No cluster nodes to build topology from')

        try:
            template = template_file.read_bytes()
        except OSError as e:
            raise TemplateMissing(
                f'Could not open template "{template_file}"'
            ) from e
        data = self._render(template, nodes)

        output_file = workdir / self.config_name
        try:
            workdir.mkdir(parents=True, exist_ok=True)
            self._write_locked(output_file, data)
        except OSError as e:
            raise WriteFailed(f'Could not write "{output_file}"') from e

        logger.info(
            'Wrote %s (%d bytes%s)', output_file, len(data),
            '' if nodes is None else f', {len(nodes)} nodes'
        )
        return output_file
