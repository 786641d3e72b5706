"""
Run Fleet Task Use Case

Architectural Intent:
- Runs one task kind (setup, rollback, cleanup, teardown, current release)
  on every target host concurrently
- The fleet verdict is the logical AND of the host verdicts
"""

import asyncio
import logging

from rollout.application.dtos.deployment_dtos import FleetTaskRequest, FleetTaskResponse
from rollout.application.tasks import RunOptions
from rollout.application.use_cases.fleet import FleetRunner

logger = logging.getLogger(__name__)


class RunFleetTask:
    def __init__(self, fleet: FleetRunner):
        self.fleet = fleet

    async def execute(self, request: FleetTaskRequest) -> FleetTaskResponse:
        options = RunOptions(pretend=request.pretend, verbose=request.verbose)
        nodes = self.fleet.nodes(request.targets)

        results = await asyncio.gather(
            *(
                self.fleet.run_task(node, request.kind, options, **request.options)
                for node in nodes
            )
        )
        response = FleetTaskResponse(kind=request.kind, results=tuple(results))
        logger.info(
            "%s finished on %d host(s), failed on %s",
            request.kind.value, len(nodes), response.failed_hosts or "none",
        )
        return response
