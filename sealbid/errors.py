# Copyright 2025 Ant Group Co., Ltd.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Exceptions raised by the auction circuit evaluator."""

from __future__ import annotations

__all__ = [
    "AuctionError",
    "EvaluationCancelledError",
    "GateEvaluationError",
    "InputShapeError",
]


class AuctionError(Exception):
    """Base exception for auction evaluation errors."""


class InputShapeError(AuctionError, ValueError):
    """Raised when the bid matrix does not match the declared shape.

    Always raised before the first gate is issued.
    """


class GateEvaluationError(AuctionError):
    """Raised when the gate engine fails while evaluating the circuit.

    The engine's own exception is available as ``__cause__``.
    """

    def __init__(self, gate: str, round_index: int | None, cause: BaseException):
        self.gate = gate
        self.round_index = round_index
        self.cause = cause
        where = "during setup" if round_index is None else f"in round {round_index}"
        super().__init__(
            f"gate '{gate}' failed {where}: {type(cause).__name__}: {cause}"
        )

    def __reduce__(self):
        return type(self), (self.gate, self.round_index, self.cause)


class EvaluationCancelledError(AuctionError):
    """Raised when cancellation is observed at a round boundary."""

    def __init__(self, round_index: int):
        self.round_index = round_index
        super().__init__(f"evaluation cancelled before round {round_index}")

    def __reduce__(self):
        return type(self), (self.round_index,)
