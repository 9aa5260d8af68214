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
import logging
import math
import time
import warnings
from copy import deepcopy
from typing import Callable, Optional

import pytest

from compute_route_bt.local_action import (
    LocalActionClient,
    LocalActionServer,
    ServerGoalHandle,
)
from compute_route_bt.messages import ComputeRoute, Path, PoseStamped, Quaternion


class WarnLog(Warning):
    """
    This is used in `warnings.warn` when a test emits a WARNING level log message.

    You can use `pytest.warns` to test for them.
    """


class ErrorLog(Warning):
    """
    This is used in `warnings.warn` when a test emits an ERROR level log message.

    You can use `pytest.warns` to test for them.
    """


class TestLoggingHandler(logging.Handler):
    """Turn WARNING and ERROR log records into Python warnings."""

    def emit(self, record: logging.LogRecord) -> None:
        msg = record.getMessage()
        if record.levelno >= logging.CRITICAL:
            print("FATAL log: ", msg, "\nFrom ", record.name)
        elif record.levelno >= logging.ERROR:
            print("ERROR log: ", msg, "\nFrom ", record.name)
            warnings.warn(message=msg, category=ErrorLog)
        elif record.levelno >= logging.WARNING:
            print("WARNING log: ", msg, "\nFrom ", record.name)
            warnings.warn(message=msg, category=WarnLog)


@pytest.fixture(autouse=True)
def logging_handler():
    handler = TestLoggingHandler(level=logging.WARNING)
    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    yield handler
    root_logger.removeHandler(handler)


def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll `predicate` until it holds or `timeout` seconds passed."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def make_pose(
    x: float,
    y: float = 0.0,
    frame_id: str = "map",
    orientation: Optional[Quaternion] = None,
) -> PoseStamped:
    pose = PoseStamped()
    pose.header.frame_id = frame_id
    pose.pose.position.x = x
    pose.pose.position.y = y
    if orientation is not None:
        pose.pose.orientation = orientation
    return pose


def execute_route(goal_handle: ServerGoalHandle) -> None:
    """
    Behave like a minimal route server.

    A NaN goal is aborted, a goal beyond x=100 runs until it is
    cancelled, everything else gets a straight route from the start pose
    (or the origin of the goal frame) to the goal pose.
    """
    goal: ComputeRoute.Goal = goal_handle.goal
    goal_x = goal.goal.pose.position.x

    if math.isnan(goal_x):
        goal_handle.abort(
            ComputeRoute.Result(error_code=ComputeRoute.Result.NO_VALID_ROUTE)
        )
        return

    if goal_x > 100.0:
        if goal_handle.wait_for_cancel(timeout=10.0):
            goal_handle.canceled(
                ComputeRoute.Result(error_code=ComputeRoute.Result.NONE)
            )
        else:
            goal_handle.abort(
                ComputeRoute.Result(error_code=ComputeRoute.Result.TIMEOUT)
            )
        return

    if goal.use_start:
        first = deepcopy(goal.start)
    else:
        first = PoseStamped(header=deepcopy(goal.goal.header))
    path = Path(header=deepcopy(goal.goal.header), poses=[first, deepcopy(goal.goal)])
    goal_handle.succeed(ComputeRoute.Result(path=path, planning_time=0.001))


@pytest.fixture
def route_server():
    server = LocalActionServer("compute_route", execute_route)
    yield server
    server.shutdown()


@pytest.fixture
def route_client(route_server):
    return LocalActionClient(route_server, "compute_route")


@pytest.fixture
def pose_factory():
    return make_pose


@pytest.fixture
def wait_until():
    return wait_for
