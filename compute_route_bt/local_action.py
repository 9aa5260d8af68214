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
In-process action server and matching client.

The server runs every accepted goal on a worker thread, like a ROS action
server spinning in its own executor. Useful for simulation and for testing
trees without a ROS graph.
"""
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from copy import deepcopy
from threading import Event, Lock
from typing import Any, Callable, Dict, List, Optional, Set

from compute_route_bt.action_client import (
    GoalEvent,
    GoalHandle,
    GoalStatus,
    RemoteInvoker,
)


class ServerGoalHandle(object):
    """Server-side view of one goal, handed to the execute callback."""

    def __init__(
        self,
        goal_id: uuid.UUID,
        goal: Any,
        notify: Callable[[GoalEvent], None],
    ):
        self.goal_id = goal_id
        self.goal = goal
        self._notify = notify
        self._cancel_requested = Event()
        self._lock = Lock()
        self._status = GoalStatus.ACCEPTED

    @property
    def status(self) -> GoalStatus:
        with self._lock:
            return self._status

    @property
    def is_active(self) -> bool:
        return self.status == GoalStatus.ACCEPTED

    @property
    def is_cancel_requested(self) -> bool:
        return self._cancel_requested.is_set()

    def request_cancel(self) -> bool:
        if not self.is_active:
            return False
        self._cancel_requested.set()
        return True

    def wait_for_cancel(self, timeout: Optional[float] = None) -> bool:
        return self._cancel_requested.wait(timeout)

    def succeed(self, result: Any) -> None:
        self._finish(GoalStatus.SUCCEEDED, result)

    def abort(self, result: Any = None) -> None:
        self._finish(GoalStatus.ABORTED, result)

    def canceled(self, result: Any = None) -> None:
        self._finish(GoalStatus.CANCELED, result)

    def _finish(self, status: GoalStatus, result: Any) -> None:
        with self._lock:
            if self._status != GoalStatus.ACCEPTED:
                raise RuntimeError(
                    f"Goal {self.goal_id} already finished with {self._status.name}"
                )
            self._status = status
        self._notify(GoalEvent(status, result))


class LocalActionServer(object):
    """
    Action server executing goals on a thread pool.

    :param execute_callback: Called with a :class:`ServerGoalHandle` for
      every accepted goal. It must finish the goal with `succeed`, `abort`
      or `canceled`; if it returns without doing so, the goal is cancelled
      if that was requested and aborted otherwise.
    :param goal_callback: Decides whether to accept a goal. Accepts
      everything if not given.
    """

    def __init__(
        self,
        action_name: str,
        execute_callback: Callable[[ServerGoalHandle], None],
        goal_callback: Optional[Callable[[Any], bool]] = None,
        max_workers: int = 4,
    ):
        self.action_name = action_name
        self.logger = logging.getLogger("action_server").getChild(action_name)
        self._execute_callback = execute_callback
        self._goal_callback = goal_callback
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=f"{action_name}_server"
        )
        self._lock = Lock()
        self._goals: Dict[uuid.UUID, ServerGoalHandle] = {}
        self._queued_goal_ids: Set[uuid.UUID] = set()
        self._cancel_on_start: Set[uuid.UUID] = set()
        self._received_goals: List[Any] = []
        self._cancelled_goal_ids: List[uuid.UUID] = []
        self._running = True

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def current_goal(self) -> Optional[Any]:
        """The most recently received goal."""
        with self._lock:
            return self._received_goals[-1] if self._received_goals else None

    @property
    def received_goals(self) -> List[Any]:
        with self._lock:
            return list(self._received_goals)

    def is_goal_cancelled(self) -> bool:
        """Check whether any goal was asked to cancel."""
        with self._lock:
            return len(self._cancelled_goal_ids) > 0

    def send_goal(
        self, goal_id: uuid.UUID, goal: Any, notify: Callable[[GoalEvent], None]
    ) -> None:
        if not self._running:
            raise RuntimeError(f"Action server {self.action_name} is shut down")
        with self._lock:
            self._queued_goal_ids.add(goal_id)
        self._executor.submit(self._handle_goal, goal_id, goal, notify)

    def cancel_goal(self, goal_id: uuid.UUID) -> bool:
        with self._lock:
            if goal_id in self._queued_goal_ids:
                # Not picked up by a worker yet, cancel as soon as it starts
                if goal_id not in self._cancel_on_start:
                    self._cancel_on_start.add(goal_id)
                    self._cancelled_goal_ids.append(goal_id)
                return True
            goal_handle = self._goals.get(goal_id)
        if goal_handle is None or not goal_handle.request_cancel():
            return False
        with self._lock:
            self._cancelled_goal_ids.append(goal_id)
        self.logger.debug(f"Cancel requested for goal {goal_id}")
        return True

    def cancel_all_goals(self) -> int:
        with self._lock:
            goal_ids = list(self._goals) + list(self._queued_goal_ids)
        return sum(1 for goal_id in goal_ids if self.cancel_goal(goal_id))

    def shutdown(self) -> None:
        self._running = False
        self.cancel_all_goals()
        self._executor.shutdown(wait=True)

    def _handle_goal(
        self, goal_id: uuid.UUID, goal: Any, notify: Callable[[GoalEvent], None]
    ) -> None:
        with self._lock:
            self._received_goals.append(goal)
        if self._goal_callback is not None and not self._goal_callback(goal):
            with self._lock:
                self._queued_goal_ids.discard(goal_id)
                self._cancel_on_start.discard(goal_id)
            self.logger.info(f"Rejected goal {goal_id}")
            notify(GoalEvent(GoalStatus.REJECTED))
            return

        goal_handle = ServerGoalHandle(goal_id, goal, notify)
        with self._lock:
            self._queued_goal_ids.discard(goal_id)
            cancel_on_start = goal_id in self._cancel_on_start
            self._cancel_on_start.discard(goal_id)
            self._goals[goal_id] = goal_handle
        notify(GoalEvent(GoalStatus.ACCEPTED))
        if cancel_on_start:
            goal_handle.request_cancel()
        try:
            self._execute_callback(goal_handle)
        except Exception as exc:
            self.logger.error(f"Execute callback for goal {goal_id} raised: {exc!r}")
        finally:
            if goal_handle.is_active:
                if goal_handle.is_cancel_requested:
                    goal_handle.canceled()
                else:
                    goal_handle.abort()
            with self._lock:
                self._goals.pop(goal_id, None)


class LocalActionClient(RemoteInvoker):
    """:class:`RemoteInvoker` talking to a :class:`LocalActionServer` in the same process."""

    def __init__(self, server: Optional[LocalActionServer], action_name: str):
        super().__init__(action_name)
        self._server = server

    def wait_for_server(self, timeout_sec: Optional[float] = None) -> bool:
        return self.server_is_ready()

    def server_is_ready(self) -> bool:
        return (
            self._server is not None
            and self._server.is_running
            and self._server.action_name == self.action_name
        )

    def _send_goal(self, handle: GoalHandle, goal: Any) -> None:
        if self._server is None:
            raise RuntimeError(f"No server for action {self.action_name}")
        goal_id = handle.goal_id
        self._server.send_goal(
            goal_id, deepcopy(goal), lambda event: self._post(goal_id, event)
        )

    def _cancel_goal(self, handle: GoalHandle) -> None:
        if self._server is not None:
            self._server.cancel_goal(handle.goal_id)
