"""
Remote Executor Port

Architectural Intent:
- Port interface for running command batches on a remote host
- Defines the contract the task layer relies on; transport details live in adapters
- Implemented by adapters (Fabric/SSH today)

Contract:
- Commands run in order; a later command only runs if the earlier ones succeeded
- Output is the full combined stdout/stderr of the whole batch, never just the last command
- A failed command is data (succeeded=False), an unreachable host is a TransportError
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Sequence
from rollout.domain.value_objects.node import Node

OutputCallback = Callable[[str], None]


class TransportError(ConnectionError):
    """The executor could not reach or run commands on a host."""

    def __init__(self, node: Node, reason: str) -> None:
        super().__init__(f"{node}: {reason}")
        self.node = node
        self.reason = reason


@dataclass(frozen=True)
class ExecutionResult:
    output: str = ""
    succeeded: bool = True
    exit_code: Optional[int] = 0
    pretended: bool = False


class RemoteExecutorPort(ABC):
    """
    Port interface for executing command batches on remote infrastructure.
    """

    @abstractmethod
    async def execute(
        self,
        node: Node,
        commands: Sequence[str],
        on_output: Optional[OutputCallback] = None,
    ) -> ExecutionResult:
        """
        Runs the batch on a node, streaming output chunks to on_output.
        Raises TransportError if the node cannot be reached.
        """
        pass
