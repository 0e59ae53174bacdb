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

"""Highest-price sealed-bid auction over bitwise-encrypted bids.

The circuit is a bit-serial tournament. Walking from the most significant bit
down, it keeps an encrypted *active mask* ``w`` of bidders whose bids still
match the running maximum prefix. In round ``i``:

1. ``s[j] = w[j] AND bids[j][i]``       active and holding a 1 here
2. ``b    = OR_j s[j]``                 bit ``i`` of the maximum
3. ``w[j] = b ? s[j] : w[j]``           drop active bidders holding a 0,
                                        unless nobody held a 1

``b`` is recorded as bit ``i`` of the winning amount. After the last round
``w`` flags every bidder whose bid equals the maximum, so ties are reported as
several winners.

The gate set has no conditional select, so step 3 is emitted as
``OR(AND(b, s[j]), AND(NOT(b), w[j]))`` unless the engine advertises a native
multiplexer, in which case one ``mux`` per bidder replaces the three gates.

Rounds are strictly sequential. Inside a round, the per-bidder steps fan out
over a thread pool and the OR is reduced as a balanced tree; each phase ends
with a barrier before the next one reads its results.
"""

from __future__ import annotations

import concurrent.futures
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from typing import Any, NamedTuple

from sealbid.config import EvaluatorConfig
from sealbid.engine.base import Ciphertext, GateEngine, SerializedGateEngine
from sealbid.errors import (
    EvaluationCancelledError,
    GateEvaluationError,
    InputShapeError,
)
from sealbid.logging_config import get_logger

__all__ = [
    "AuctionCircuit",
    "AuctionResult",
    "BidMatrix",
    "RoundState",
    "evaluate",
    "validate_bid_matrix",
]

logger = get_logger(__name__)

BidMatrix = Sequence[Sequence[Ciphertext]]


class AuctionResult(NamedTuple):
    """Encrypted outcome; both parts need the client key to be read."""

    winner_mask: tuple[Ciphertext, ...]
    amount: tuple[Ciphertext, ...]


class RoundState(NamedTuple):
    """Snapshot handed to ``on_round`` observers after each round."""

    round_index: int
    mask: tuple[Ciphertext, ...]
    decision: Ciphertext


def validate_bid_matrix(bids: BidMatrix, bit_width: int, bidder_count: int) -> None:
    """Raise :class:`InputShapeError` unless ``bids`` is bidder_count x bit_width."""
    if bidder_count < 2:
        raise InputShapeError(f"need at least 2 bidders, got {bidder_count}")
    if bit_width < 1:
        raise InputShapeError(f"bit_width must be >= 1, got {bit_width}")
    if len(bids) != bidder_count:
        raise InputShapeError(
            f"bid matrix has {len(bids)} rows, expected {bidder_count}"
        )
    for j, row in enumerate(bids):
        if len(row) != bit_width:
            raise InputShapeError(
                f"bid of bidder {j} has {len(row)} bits, expected {bit_width}"
            )


class _PhaseRunner:
    """Runs one data-parallel phase and blocks until every task has finished."""

    def __init__(self, max_workers: int):
        self._executor: concurrent.futures.ThreadPoolExecutor | None = None
        if max_workers > 1:
            self._executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="sealbid-gate"
            )

    def map(self, fn: Callable[..., Any], *iterables: Iterable[Any]) -> list[Any]:
        if self._executor is None:
            return list(map(fn, *iterables))

        futures = [self._executor.submit(fn, *args) for args in zip(*iterables)]
        done, _ = concurrent.futures.wait(
            futures, return_when=concurrent.futures.FIRST_EXCEPTION
        )
        for f in done:
            exc = f.exception()
            if exc:
                for nf in futures:
                    nf.cancel()
                raise exc
        return [f.result() for f in futures]

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=True)

    def __enter__(self) -> _PhaseRunner:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class AuctionCircuit:
    """Winner determination over encrypted bids.

    Args:
        engine: gate engine holding the evaluation key. Engines that are not
            ``thread_safe`` are wrapped in :class:`SerializedGateEngine` when
            more than one worker is configured.
        config: scheduling options; defaults to :class:`EvaluatorConfig`.
    """

    def __init__(self, engine: GateEngine, config: EvaluatorConfig | None = None):
        self.config = config or EvaluatorConfig()
        if not engine.thread_safe and self.config.max_workers > 1:
            engine = SerializedGateEngine(engine)
        self.engine = engine
        self.use_mux = self.config.native_mux and engine.supports_mux

    def _gate(
        self, round_index: int | None, name: str, fn: Callable[..., Any], *args: Any
    ) -> Ciphertext:
        try:
            return fn(*args)
        except Exception as e:
            raise GateEvaluationError(name, round_index, e) from e

    def _or_reduce(
        self, runner: _PhaseRunner, signals: list[Ciphertext], round_index: int
    ) -> Ciphertext:
        engine = self.engine
        if self.config.reduction == "linear":
            acc = self._gate(round_index, "or", engine.or_, signals[0], signals[1])
            for s in signals[2:]:
                acc = self._gate(round_index, "or", engine.or_, acc, s)
            return acc

        level = signals
        while len(level) > 1:
            merged = runner.map(
                lambda a, b: self._gate(round_index, "or", engine.or_, a, b),
                level[0::2],
                level[1::2],
            )
            if len(level) % 2:
                merged.append(level[-1])
            level = merged
        return level[0]

    def _select(
        self,
        round_index: int,
        b: Ciphertext,
        b_not: Ciphertext,
        s_j: Ciphertext,
        w_j: Ciphertext,
    ) -> Ciphertext:
        engine = self.engine
        c0 = self._gate(round_index, "and", engine.and_, b, s_j)
        c1 = self._gate(round_index, "and", engine.and_, b_not, w_j)
        return self._gate(round_index, "or", engine.or_, c0, c1)

    def _round(
        self,
        runner: _PhaseRunner,
        round_index: int,
        column: list[Ciphertext],
        w: list[Ciphertext],
    ) -> tuple[list[Ciphertext], Ciphertext]:
        engine = self.engine

        s = runner.map(
            lambda w_j, bit: self._gate(round_index, "and", engine.and_, w_j, bit),
            w,
            column,
        )
        b = self._or_reduce(runner, s, round_index)

        if self.use_mux:
            new_w = runner.map(
                lambda s_j, w_j: self._gate(
                    round_index, "mux", engine.mux, b, s_j, w_j
                ),
                s,
                w,
            )
        else:
            b_not = self._gate(round_index, "not", engine.not_, b)
            new_w = runner.map(
                lambda s_j, w_j: self._select(round_index, b, b_not, s_j, w_j),
                s,
                w,
            )
        return new_w, b

    def evaluate(
        self,
        bids: BidMatrix,
        bit_width: int,
        bidder_count: int,
        *,
        cancel: threading.Event | None = None,
        on_round: Callable[[RoundState], None] | None = None,
    ) -> AuctionResult:
        """Run the auction circuit.

        Args:
            bids: ``bidder_count`` rows of ``bit_width`` encrypted bits, MSB first.
            bit_width: number of bits per bid.
            bidder_count: number of bidders.
            cancel: checked before every round; once set, evaluation stops
                with :class:`EvaluationCancelledError`.
            on_round: called with a :class:`RoundState` after every round.

        Returns:
            ``AuctionResult(winner_mask, amount)``, index-aligned with ``bids``
            and MSB first respectively.

        Raises:
            InputShapeError: malformed input, before any gate is issued.
            GateEvaluationError: the engine failed; no partial result.
            EvaluationCancelledError: ``cancel`` was set.
        """
        validate_bid_matrix(bids, bit_width, bidder_count)

        started = time.perf_counter()
        amount: list[Ciphertext] = []
        try:
            w = [
                self._gate(None, "trivial_encrypt", self.engine.trivial_encrypt, True)
                for _ in range(bidder_count)
            ]
            with _PhaseRunner(self.config.max_workers) as runner:
                for i in range(bit_width):
                    if cancel is not None and cancel.is_set():
                        raise EvaluationCancelledError(i)
                    round_started = time.perf_counter()
                    column = [row[i] for row in bids]
                    w, b = self._round(runner, i, column, w)
                    amount.append(b)
                    logger.debug(
                        "round %d/%d done in %.1f ms",
                        i + 1,
                        bit_width,
                        (time.perf_counter() - round_started) * 1000,
                    )
                    if on_round is not None:
                        on_round(RoundState(i, tuple(w), b))
        except GateEvaluationError as e:
            logger.warning("auction evaluation aborted: %s", e)
            raise

        logger.info(
            "auction evaluated: %d bidders x %d bits, %s select, %.1f ms",
            bidder_count,
            bit_width,
            "native mux" if self.use_mux else "and/or/not",
            (time.perf_counter() - started) * 1000,
        )
        return AuctionResult(tuple(w), tuple(amount))


def evaluate(
    engine: GateEngine,
    bids: BidMatrix,
    bit_width: int,
    bidder_count: int,
    *,
    config: EvaluatorConfig | None = None,
    cancel: threading.Event | None = None,
    on_round: Callable[[RoundState], None] | None = None,
) -> AuctionResult:
    """Functional form of :meth:`AuctionCircuit.evaluate`."""
    return AuctionCircuit(engine, config).evaluate(
        bids, bit_width, bidder_count, cancel=cancel, on_round=on_round
    )
