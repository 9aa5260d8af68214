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
"""Scheduler-side helpers for ticking a node until it reports a result."""
import logging
import time
from typing import Callable, Protocol

from result import Err, Ok, Result

from compute_route_bt.exceptions import BehaviorTreeException
from compute_route_bt.helpers import BTNodeState


class Tickable(Protocol):
    @property
    def state(self) -> str:
        ...

    def tick(self) -> Result[str, BehaviorTreeException]:
        ...

    def untick(self) -> Result[str, BehaviorTreeException]:
        ...


def tick_until_done(
    tickable: Tickable,
    max_ticks: int = 500,
    loop_duration: float = 0.0,
    sleep: Callable[[float], None] = time.sleep,
) -> Result[str, BehaviorTreeException]:
    """
    Tick `tickable` until it returns `SUCCEEDED` or `FAILED`.

    The node itself never times out, so the bound lives here: after
    `max_ticks` ticks without a result the node is unticked, which cancels
    whatever it is waiting for, and the last state (`RUNNING`) is returned.

    :param loop_duration: Seconds to sleep between ticks.
    """
    state = tickable.state
    for _ in range(max_ticks):
        tick_result = tickable.tick()
        if tick_result.is_err():
            return tick_result
        state = tick_result.unwrap()
        if state in (BTNodeState.SUCCEEDED, BTNodeState.FAILED):
            return Ok(state)
        if loop_duration > 0.0:
            sleep(loop_duration)

    logging.getLogger("tick_loop").warning(
        f"No result after {max_ticks} ticks, halting"
    )
    untick_result = tickable.untick()
    if untick_result.is_err():
        return Err(untick_result.unwrap_err())
    return Ok(state)
