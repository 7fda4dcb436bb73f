"""
Tests for launching the managed process.
"""

import subprocess

import pytest

from rservice.process import LaunchFailed, SubprocessLauncher


class _Popen:
    calls = []

    def __init__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        self.pid = 4242


@pytest.fixture
def fake_popen(monkeypatch):
    _Popen.calls = []
    monkeypatch.setattr(subprocess, 'Popen', _Popen)
    return _Popen


class TestSubprocessLauncher:

    def test_launch_arguments(self, tmp_path, fake_popen):
        executable = tmp_path / 'code' / 'redis-server'

        result = SubprocessLauncher().launch(
            executable, tmp_path / 'work', 'sentinel.conf --sentinel'
        )

        assert result is None
        [(cmd, kwargs)] = fake_popen.calls
        assert cmd == [str(executable), 'sentinel.conf', '--sentinel']
        assert kwargs['cwd'] == str(tmp_path / 'work')
        assert kwargs['start_new_session'] is True
        assert not kwargs.get('shell', False)

    def test_single_argument(self, tmp_path, fake_popen):
        SubprocessLauncher().launch(tmp_path / 'redis-server', tmp_path,
                                    'default.conf')

        [(cmd, _)] = fake_popen.calls
        assert cmd[1:] == ['default.conf']

    def test_missing_executable(self, tmp_path):
        with pytest.raises(LaunchFailed):
            SubprocessLauncher().launch(
                tmp_path / 'no-such-server', tmp_path, 'default.conf'
            )

    def test_not_executable(self, tmp_path):
        executable = tmp_path / 'redis-server'
        executable.write_text('not a program')
        executable.chmod(0o644)

        with pytest.raises(LaunchFailed):
            SubprocessLauncher().launch(executable, tmp_path, 'default.conf')
