# Copyright 2026 FZI Forschungszentrum Informatik
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
#    * Redistributions of source code must retain the above copyright
#      notice, this list of conditions and the following disclaimer.
#
#    * Redistributions in binary form must reproduce the above copyright
#      notice, this list of conditions and the following disclaimer in the
#      documentation and/or other materials provided with the distribution.
#
#    * Neither the name of the FZI Forschungszentrum Informatik nor the names of its
#      contributors may be used to endorse or promote products derived from
#      this software without specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
# CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
# SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
# INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
# CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
from copy import deepcopy
import logging
from typing import Any, Dict, Optional

from result import Err, Ok, Result

from compute_route_bt.action_client import RemoteInvoker
from compute_route_bt.exceptions import BehaviorTreeException, NodeConfigError
from compute_route_bt.helpers import BTNodeState
from compute_route_bt.messages import ComputeRoute, Path, PoseStamped
from compute_route_bt.node import Leaf, define_bt_node
from compute_route_bt.node_config import NodeConfig
from compute_route_bt.nodes.goal_lifecycle import GoalLifecycle


def build_route_goal(
    goal: PoseStamped, start: Optional[PoseStamped] = None
) -> ComputeRoute.Goal:
    """
    Build the action goal for a route from `start` to `goal`.

    Without a start pose the server routes from the robot's current pose.
    The poses are copied, so the request does not change when the inputs do.
    """
    request = ComputeRoute.Goal(goal=deepcopy(goal), use_poses=True)
    if start is not None:
        request.start = deepcopy(start)
        request.use_start = True
    return request


def translate_route_result(result: Optional[ComputeRoute.Result]) -> Path:
    """Return the path of a successful result, or an empty path."""
    if result is None:
        return Path()
    return deepcopy(result.path)


@define_bt_node(
    NodeConfig(
        version="0.1.0",
        options={
            "action_name": str,
            "wait_for_action_server_seconds": float,
            "fail_if_not_available": bool,
        },
        inputs={"goal": PoseStamped, "start": PoseStamped},
        outputs={"path": Path, "error_code": int},
        max_children=0,
        optional_options=["fail_if_not_available", "start"],
    )
)
class ComputeRouteAction(Leaf):
    """
    Compute a route to `goal` (optionally from `start`) on a route server.

    Will always return RUNNING on the tick a new goal is sent, even if
    the server replies really quickly! Once the goal finished, the node
    keeps returning its outcome until it is unticked or reset.

    outputs['path'] is written once per goal: the computed route on
    success, an empty path on failure. outputs['error_code'] holds the
    server's error code.

    On untick, reset or shutdown, a goal in flight is cancelled and a new
    one will be sent on the next tick.
    """

    def __init__(
        self,
        options: Optional[Dict] = None,
        name: Optional[str] = None,
        action_client: Optional[RemoteInvoker] = None,
    ) -> None:
        super().__init__(options=options, name=name)
        self._action_client = action_client
        self._lifecycle: Optional[GoalLifecycle] = None

    @property
    def lifecycle(self) -> Optional[GoalLifecycle]:
        return self._lifecycle

    def _do_setup(self) -> Result[str, BehaviorTreeException]:
        if self._action_client is None:
            error_msg = f"Node {self.name} does not have an action client!"
            self.logerr(error_msg)
            return Err(BehaviorTreeException(error_msg))

        if self._action_client.action_name != self.options["action_name"]:
            return Err(
                NodeConfigError(
                    f"Action client is for {self._action_client.action_name}, "
                    f"but node {self.name} is configured for {self.options['action_name']}"
                )
            )

        self._lifecycle = GoalLifecycle(
            invoker=self._action_client,
            build_request=self._build_request,
            on_done=self._write_result,
            logger=logging.getLogger(self.name),
        )

        if not self._action_client.wait_for_server(
            timeout_sec=self.options["wait_for_action_server_seconds"]
        ):
            if not self.options["fail_if_not_available"]:
                return Err(
                    BehaviorTreeException(
                        f"Action server {self.options['action_name']} not available after waiting "
                        f"{self.options['wait_for_action_server_seconds']} seconds!"
                    )
                )
            self.logwarn(
                f"Action server {self.options['action_name']} not available, "
                "node will fail when ticked"
            )
            self._lifecycle.server_available = False

        return Ok(BTNodeState.IDLE)

    def _build_request(self) -> ComputeRoute.Goal:
        return build_route_goal(self.inputs["goal"], self.inputs["start"])

    def _write_result(self, succeeded: bool, result: Optional[Any]) -> None:
        self.outputs["path"] = translate_route_result(result if succeeded else None)
        if result is not None:
            self.outputs["error_code"] = result.error_code
        elif succeeded:
            self.outputs["error_code"] = ComputeRoute.Result.NONE
        else:
            self.outputs["error_code"] = ComputeRoute.Result.UNKNOWN

    def _do_tick(self) -> Result[str, BehaviorTreeException]:
        if self._lifecycle is None:
            return Err(BehaviorTreeException(f"Node {self.name} was not set up correctly!"))
        return Ok(self._lifecycle.tick())

    def _do_untick(self) -> Result[str, BehaviorTreeException]:
        if self._lifecycle is not None and self._lifecycle.halt():
            # The halted goal produced nothing, don't leave older results around
            self.outputs["path"] = Path()
            self.outputs["error_code"] = ComputeRoute.Result.UNKNOWN
        return Ok(BTNodeState.IDLE)

    def _do_reset(self) -> Result[str, BehaviorTreeException]:
        if self._lifecycle is not None:
            self._lifecycle.halt()
        self.outputs["path"] = Path()
        return Ok(BTNodeState.IDLE)

    def _do_shutdown(self) -> Result[str, BehaviorTreeException]:
        if self._lifecycle is not None:
            self._lifecycle.halt()
        self._lifecycle = None
        return Ok(BTNodeState.SHUTDOWN)
