"""
Fabric Adapter

Architectural Intent:
- Infrastructure adapter implementing RemoteExecutorPort via Fabric/SSH
- One Connection per batch and host; blocking Fabric calls run in the default
  thread pool so several hosts can be driven concurrently from asyncio
- A batch is joined with '&&': later commands only run if earlier ones succeeded

Security:
- SSH connections use connect_timeout, allow_agent, look_for_keys
- Callers quote every interpolated value; this adapter never builds commands
"""

import asyncio
import logging
from typing import Optional, Sequence
from fabric import Connection
from rollout.domain.ports.remote_executor_port import (
    ExecutionResult,
    OutputCallback,
    RemoteExecutorPort,
    TransportError,
)
from rollout.domain.value_objects.node import Node

logger = logging.getLogger(__name__)


class _CallbackStream:
    """File-like sink handing every chunk Fabric writes to a callback."""

    def __init__(self, on_output: OutputCallback) -> None:
        self._on_output = on_output

    def write(self, data: str) -> int:
        if data:
            self._on_output(data)
        return len(data)

    def flush(self) -> None:
        pass


class FabricAdapter(RemoteExecutorPort):
    """Adapter implementing RemoteExecutorPort via Fabric/SSH."""

    def __init__(
        self, connect_timeout: int = 30, key_filename: Optional[str] = None
    ) -> None:
        self.connect_timeout = connect_timeout
        self.key_filename = key_filename

    def _get_connection(self, node: Node) -> Connection:
        connect_kwargs = {
            "allow_agent": True,
            "look_for_keys": True,
        }
        if self.key_filename:
            connect_kwargs["key_filename"] = self.key_filename
        return Connection(
            host=node.host,
            user=node.user,
            port=node.port,
            connect_timeout=self.connect_timeout,
            connect_kwargs=connect_kwargs,
        )

    async def execute(
        self,
        node: Node,
        commands: Sequence[str],
        on_output: Optional[OutputCallback] = None,
    ) -> ExecutionResult:
        if not commands:
            return ExecutionResult()
        command = " && ".join(commands)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._run, node, command, on_output)

    def _run(
        self, node: Node, command: str, on_output: Optional[OutputCallback]
    ) -> ExecutionResult:
        stream = _CallbackStream(on_output) if on_output else None
        conn = self._get_connection(node)
        try:
            result = conn.run(
                command,
                hide=stream is None,
                warn=True,
                in_stream=False,
                out_stream=stream,
                err_stream=stream,
            )
        except Exception as e:
            logger.error("Execution failed on %s: %s", node, e)
            raise TransportError(node, str(e)) from e
        finally:
            conn.close()

        if result.failed:
            logger.warning(
                "Command failed on %s (exit %s): %s", node, result.exited, command
            )
        return ExecutionResult(
            output=result.stdout + result.stderr,
            succeeded=result.ok,
            exit_code=result.exited,
        )
