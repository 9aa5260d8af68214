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
"""
Tick-driven lifecycle of one remote goal.

:class:`GoalLifecycle` is what turns an asynchronous action into a
behavior tree leaf: every tick either sends a goal, looks at the one in
flight or repeats the outcome of the finished one. Nothing here blocks,
and nothing here raises for remote-side problems. Those end the goal with
`FAILED`.
"""
import logging
from enum import Enum
from typing import Any, Callable, Optional

from compute_route_bt.action_client import GoalEvent, GoalHandle, GoalStatus, RemoteInvoker
from compute_route_bt.exceptions import ActionClientError
from compute_route_bt.helpers import BTNodeState


class LifecycleState(Enum):
    IDLE = 0
    AWAITING_ACCEPTANCE = 1
    RUNNING = 2
    DONE = 3


class GoalLifecycle(object):
    """
    State machine for sending a goal and waiting for its outcome.

    :param invoker: Client for the remote action.
    :param build_request: Called on the tick that leaves IDLE, returns the goal to send.
    :param on_done: Called exactly once per goal that reaches DONE, with
      `succeeded` and the remote result (`None` if there is none). Not
      called when the goal is halted.
    """

    def __init__(
        self,
        invoker: RemoteInvoker,
        build_request: Callable[[], Any],
        on_done: Callable[[bool, Optional[Any]], None],
        logger: Optional[logging.Logger] = None,
    ):
        self._invoker = invoker
        self._build_request = build_request
        self._on_done = on_done
        self.logger = logger if logger is not None else logging.getLogger(__name__)

        self.server_available = True
        self._state = LifecycleState.IDLE
        self._handle: Optional[GoalHandle] = None
        self._outcome: Optional[str] = None

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def outcome(self) -> Optional[str]:
        """`SUCCEEDED` or `FAILED` while DONE, `None` otherwise."""
        return self._outcome

    @property
    def has_live_goal(self) -> bool:
        return self._handle is not None

    def tick(self) -> str:
        """Advance the lifecycle by one step and return `RUNNING`, `SUCCEEDED` or `FAILED`."""
        if self._state == LifecycleState.IDLE:
            return self._tick_send_new_goal()

        if self._state == LifecycleState.DONE:
            return self._outcome

        event = self._poll()
        if event is None:
            return self._finish(False, None)

        if self._state == LifecycleState.AWAITING_ACCEPTANCE:
            if event.status == GoalStatus.PENDING:
                return BTNodeState.RUNNING
            if event.status == GoalStatus.REJECTED:
                self.logger.warning("Goal was rejected by the action server!")
                return self._finish(False, event.result)
            self.logger.debug("Goal was accepted by the action server")
            self._state = LifecycleState.RUNNING

        return self._tick_wait_for_result(event)

    def halt(self) -> bool:
        """
        Cancel the goal in flight, if any, and go back to IDLE.

        Cancellation is only requested here, the remote side may still be
        working on the goal. This does not wait for the goal's terminal
        event: late events for the released handle are dropped by
        `RemoteInvoker._post`, and the next tick sends a fresh goal.

        :returns: True if a goal in flight was cancelled.
        """
        cancelled = False
        if self._handle is not None:
            self.logger.debug(f"Halting, cancelling goal {self._handle.goal_id}")
            try:
                self._invoker.cancel(self._handle)
            except (ActionClientError, RuntimeError, OSError) as exc:
                self.logger.error(f"Failed to request goal cancellation: {exc!r}")
            self._handle = None
            cancelled = True
        self._state = LifecycleState.IDLE
        self._outcome = None
        return cancelled

    def _tick_send_new_goal(self) -> str:
        if not self.server_available:
            self.logger.warning(
                f"Action server {self._invoker.action_name} is not available, "
                "not sending a goal"
            )
            return self._finish(False, None)

        request = self._build_request()
        try:
            self._handle = self._invoker.submit(request)
        except (ActionClientError, RuntimeError, OSError) as exc:
            self.logger.error(f"Sending goal failed: {exc!r}")
            return self._finish(False, None)

        self.logger.debug(f"Sent goal {self._handle.goal_id}")
        self._state = LifecycleState.AWAITING_ACCEPTANCE
        # Always RUNNING on the tick a goal is sent, even if the server is fast
        return BTNodeState.RUNNING

    def _tick_wait_for_result(self, event: GoalEvent) -> str:
        if event.status == GoalStatus.SUCCEEDED:
            self.logger.debug("Goal succeeded")
            return self._finish(True, event.result)
        if event.status == GoalStatus.CANCELED:
            self.logger.warning("Goal was cancelled on the action server!")
            return self._finish(False, event.result)
        if event.status in (GoalStatus.ABORTED, GoalStatus.REJECTED):
            self.logger.warning(f"Goal failed with status {event.status.name}")
            return self._finish(False, event.result)
        return BTNodeState.RUNNING

    def _poll(self) -> Optional[GoalEvent]:
        try:
            return self._invoker.poll(self._handle)
        except (ActionClientError, RuntimeError, OSError) as exc:
            self.logger.error(f"Polling goal failed: {exc!r}")
            return None

    def _finish(self, succeeded: bool, result: Optional[Any]) -> str:
        if self._handle is not None:
            self._invoker.release(self._handle)
            self._handle = None
        self._state = LifecycleState.DONE
        self._outcome = BTNodeState.SUCCEEDED if succeeded else BTNodeState.FAILED
        self._on_done(succeeded, result)
        return self._outcome
