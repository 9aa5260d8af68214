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
Client side of the request/response/cancel protocol to a remote action server.

The behavior tree ticks from a single thread, while transports deliver
goal responses and results from their own threads (an executor, a worker
pool, ...). Those notifications never touch node state directly: they
are posted into a per-goal :class:`GoalMailbox` and picked up by the next
:meth:`RemoteInvoker.poll` on the ticking thread.
"""
import abc
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Any, Dict, Optional

from compute_route_bt.exceptions import ActionClientError


class GoalStatus(Enum):
    PENDING = 0
    ACCEPTED = 1
    REJECTED = 2
    SUCCEEDED = 3
    ABORTED = 4
    CANCELED = 5


TERMINAL_STATUSES = (
    GoalStatus.REJECTED,
    GoalStatus.SUCCEEDED,
    GoalStatus.ABORTED,
    GoalStatus.CANCELED,
)


@dataclass(frozen=True)
class GoalEvent:
    status: GoalStatus
    result: Optional[Any] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class GoalHandle(object):
    """Opaque reference to one goal sent through a :class:`RemoteInvoker`."""

    def __init__(self, action_name: str):
        self.goal_id = uuid.uuid4()
        self.action_name = action_name
        self._valid = True

    @property
    def valid(self) -> bool:
        return self._valid

    def invalidate(self) -> None:
        self._valid = False

    def __repr__(self) -> str:
        return (
            f"GoalHandle(action_name={self.action_name!r}, goal_id={self.goal_id}, "
            f"valid={self._valid})"
        )


class GoalMailbox(object):
    """
    Single-slot handoff for the latest event of one goal.

    Written from transport threads, read from the ticking thread. Once a
    terminal event was posted, later events are dropped, so whichever
    terminal outcome arrives first wins.
    """

    def __init__(self):
        self._lock = Lock()
        self._event = GoalEvent(GoalStatus.PENDING)

    def post(self, event: GoalEvent) -> bool:
        with self._lock:
            if self._event.is_terminal:
                return False
            self._event = event
            return True

    def peek(self) -> GoalEvent:
        with self._lock:
            return self._event


class RemoteInvoker(abc.ABC):
    """
    Non-blocking client for a single, named remote action.

    Subclasses implement the transport in :meth:`_send_goal` and
    :meth:`_cancel_goal` and report progress by calling :meth:`_post`
    from whatever thread their callbacks run on. None of the public
    methods may block.
    """

    def __init__(self, action_name: str):
        self.action_name = action_name
        self.logger = logging.getLogger("action_client").getChild(action_name)
        self._lock = Lock()
        self._mailboxes: Dict[uuid.UUID, GoalMailbox] = {}

    @abc.abstractmethod
    def wait_for_server(self, timeout_sec: Optional[float] = None) -> bool:
        """Block until the action server is available, or the timeout passed."""

    @abc.abstractmethod
    def server_is_ready(self) -> bool:
        """Check whether the action server is currently available."""

    @abc.abstractmethod
    def _send_goal(self, handle: GoalHandle, goal: Any) -> None:
        """Hand `goal` to the transport. Must return immediately."""

    @abc.abstractmethod
    def _cancel_goal(self, handle: GoalHandle) -> None:
        """Ask the transport to cancel the goal. Must return immediately."""

    def submit(self, goal: Any) -> GoalHandle:
        """Send a new goal and return its handle. Acceptance is reported via :meth:`poll`."""
        handle = GoalHandle(self.action_name)
        with self._lock:
            self._mailboxes[handle.goal_id] = GoalMailbox()
        self.logger.debug(f"Sending goal {handle.goal_id}")
        try:
            self._send_goal(handle, goal)
        except Exception:
            self.release(handle)
            raise
        return handle

    def poll(self, handle: GoalHandle) -> GoalEvent:
        """Return the latest event for `handle` without waiting."""
        return self._get_mailbox(handle).peek()

    def cancel(self, handle: GoalHandle) -> None:
        """
        Request cancellation of the goal and invalidate `handle`.

        Whatever the server reports for this goal afterwards is dropped.
        """
        self._get_mailbox(handle)
        self.logger.debug(f"Cancelling goal {handle.goal_id}")
        self.release(handle)
        self._cancel_goal(handle)

    def release(self, handle: GoalHandle) -> None:
        """Forget about `handle`, e.g. after its terminal event was observed."""
        with self._lock:
            self._mailboxes.pop(handle.goal_id, None)
        handle.invalidate()

    def is_live(self, goal_id: uuid.UUID) -> bool:
        with self._lock:
            return goal_id in self._mailboxes

    def _get_mailbox(self, handle: GoalHandle) -> GoalMailbox:
        with self._lock:
            mailbox = self._mailboxes.get(handle.goal_id)
        if mailbox is None or not handle.valid:
            raise ActionClientError(f"Unknown or stale goal handle: {handle!r}")
        return mailbox

    def _post(self, goal_id: uuid.UUID, event: GoalEvent) -> None:
        """Record `event` for a goal. Safe to call from any thread."""
        with self._lock:
            mailbox = self._mailboxes.get(goal_id)
        if mailbox is None:
            self.logger.debug(
                f"Dropping {event.status.name} for goal {goal_id}, handle was released"
            )
            return
        if not mailbox.post(event):
            self.logger.debug(
                f"Dropping {event.status.name} for goal {goal_id}, it already finished"
            )
