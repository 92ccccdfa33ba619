"""
SSH command executor.

Runs service control commands on Windows hosts through their OpenSSH server.
paramiko is blocking, so each command runs in a worker thread; the awaiting
coroutine stays cancellable and the channel timeout bounds the thread.
"""

import asyncio
import logging
import socket

import paramiko

from ..core.config_schema import RemoteConfig
from ..core.exceptions import TransportError, ValidationError

logger = logging.getLogger(__name__)


class SSHCommandExecutor:
    """Remote command executor bound to one host."""

    def __init__(
        self,
        address: str,
        username: str,
        password: str,
        port: int = 22,
        timeout: float = 10.0,
    ):
        if not address:
            raise ValidationError("Host address must not be empty", field="address")
        if not username:
            raise ValidationError("Username must not be empty", field="username")
        if not 1 <= port <= 65535:
            raise ValidationError(f"Invalid port {port}", field="port", value=port)

        self.address = address
        self.username = username
        self.port = port
        self.timeout = timeout
        self._password = password

    def __repr__(self) -> str:
        return f"SSHCommandExecutor({self.username}@{self.address}:{self.port})"

    async def run_command(self, command: str) -> str:
        """Run a command and return its standard output."""
        return await asyncio.to_thread(self._run_blocking, command)

    def _connect(self) -> paramiko.SSHClient:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        client.connect(
            hostname=self.address,
            port=self.port,
            username=self.username,
            password=self._password,
            timeout=self.timeout,
            banner_timeout=self.timeout,
            auth_timeout=self.timeout,
            allow_agent=False,
            look_for_keys=False,
        )
        return client

    def _run_blocking(self, command: str) -> str:
        try:
            client = self._connect()
        except (paramiko.SSHException, socket.error) as exc:
            raise TransportError(
                f"Failed to connect to {self.address}:{self.port}: {exc}",
                command=command,
                host=self.address,
            ) from exc

        try:
            _, stdout, stderr = client.exec_command(command, timeout=self.timeout)
            out = stdout.read().decode(errors="replace")
            err = stderr.read().decode(errors="replace")
            rc = stdout.channel.recv_exit_status()
        except (paramiko.SSHException, socket.error) as exc:
            raise TransportError(
                f"Failed to run command on {self.address}: {exc}",
                command=command,
                host=self.address,
            ) from exc
        finally:
            client.close()

        # sc reports service errors on stdout with a non-zero exit code; those
        # are left to the output classifier. Only empty output is a transport problem.
        if rc != 0 and not out.strip():
            raise TransportError(
                f"Command exited with code {rc}: {err.strip()}",
                command=command,
                host=self.address,
                details={"exit_code": rc},
            )

        logger.debug(
            f"Ran `{command}` on {self.address} (exit code {rc})",
            extra={"host": self.address, "exit_code": rc}
        )
        return out


class SSHExecutorFactory:
    """Creates SSH executors from stored server records."""

    def __init__(self, config: RemoteConfig | None = None):
        self.config = config or RemoteConfig()

    def create(self, address: str, username: str, password: str, port: int | None = None) -> SSHCommandExecutor:
        return SSHCommandExecutor(
            address,
            username,
            password,
            port=port or self.config.port,
            timeout=self.config.connect_timeout,
        )
