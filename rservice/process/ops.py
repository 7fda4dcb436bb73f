import abc
import shlex
import logging
import subprocess

from pathlib import Path

from . import ProcessError

logger = logging.getLogger(__name__)


class LaunchFailed(ProcessError):
    pass


class ProcessLauncher(abc.ABC):
    @abc.abstractmethod
    def launch(self, executable: Path, workdir: Path, arguments: str):
        """Start ``executable`` in ``workdir`` and return immediately.

        Nothing about the started process is retained; stopping it is
        done through its control port.
        """


class SubprocessLauncher(ProcessLauncher):
    def command(self, executable: Path, arguments: str):
        return [str(executable)] + shlex.split(arguments)

    def launch(self, executable, workdir, arguments):
        cmd = self.command(executable, arguments)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug('Starting process in %s: %s', workdir, ' '.join(cmd))
        try:
            process = subprocess.Popen(
                cmd,
                cwd=str(workdir),
                stdin=subprocess.DEVNULL,
                start_new_session=True
            )
        except OSError as e:
            raise LaunchFailed(f'Could not start "{executable}"') from e
        logger.info('Started %s PID=%d', Path(executable).name, process.pid)
