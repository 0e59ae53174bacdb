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

"""Failure semantics of the auction circuit: validation, faults, cancellation."""

import logging
import threading

import pytest

import sealbid
from sealbid.circuit.auction import AuctionCircuit, validate_bid_matrix
from sealbid.config import EvaluatorConfig
from sealbid.engine.base import EngineFaultError, KeyMismatchError
from sealbid.engine.stats import CountingGateEngine
from sealbid.errors import (
    AuctionError,
    EvaluationCancelledError,
    GateEvaluationError,
    InputShapeError,
)


class TestInputValidation:
    """Malformed bid matrices are rejected before any gate is issued."""

    @pytest.fixture
    def counted(self, mock_keys):
        client, engine = mock_keys
        return client, CountingGateEngine(engine)

    def _assert_rejected(self, engine, bids, bit_width, bidder_count, match):
        with pytest.raises(InputShapeError, match=match):
            sealbid.evaluate(engine, bids, bit_width, bidder_count)
        assert engine.stats.total == 0
        assert engine.stats.trivial == 0

    def test_single_bidder(self, counted):
        client, engine = counted
        bids = sealbid.encrypt_bids(client, [3], 2)
        self._assert_rejected(engine, bids, 2, 1, "at least 2 bidders")

    def test_zero_width(self, counted):
        _, engine = counted
        self._assert_rejected(engine, [[], []], 0, 2, "bit_width")

    def test_row_count_mismatch(self, counted):
        client, engine = counted
        bids = sealbid.encrypt_bids(client, [1, 2, 3], 2)
        self._assert_rejected(engine, bids, 2, 2, "3 rows, expected 2")

    def test_short_row(self, counted):
        client, engine = counted
        bids = sealbid.encrypt_bids(client, [1, 2, 3], 2)
        bids[2] = bids[2][:1]
        self._assert_rejected(engine, bids, 2, 3, "bidder 2 has 1 bits")

    def test_long_row(self, counted):
        client, engine = counted
        bids = sealbid.encrypt_bids(client, [1, 2], 3)
        self._assert_rejected(engine, bids, 2, 2, "bidder 0 has 3 bits")

    def test_shape_error_is_value_error(self):
        with pytest.raises(ValueError):
            validate_bid_matrix([[None]], 1, 1)
        assert issubclass(InputShapeError, AuctionError)

    def test_valid_matrix_passes(self):
        validate_bid_matrix([[0, 1], [1, 0], [1, 1]], 2, 3)


class TestGateFailures:
    """Engine faults abort the whole evaluation."""

    @pytest.mark.parametrize("max_workers", [1, 4])
    @pytest.mark.parametrize("fail_after", [0, 5, 23])
    def test_injected_fault(self, max_workers, fail_after):
        client, engine = sealbid.gen_keys("mock", fail_after=fail_after)
        bids = sealbid.encrypt_bids(client, [5, 6, 4, 1], 3)
        seen = []

        with pytest.raises(GateEvaluationError) as info:
            sealbid.evaluate(
                engine,
                bids,
                3,
                4,
                config=EvaluatorConfig(max_workers=max_workers),
                on_round=seen.append,
            )

        assert isinstance(info.value.__cause__, EngineFaultError)
        assert info.value.gate in ("and", "or", "not")
        assert info.value.round_index is not None
        assert len(seen) == info.value.round_index

    def test_fault_in_native_mux(self):
        # 2 ANDs + 1 OR precede the first mux with two bidders
        client, engine = sealbid.gen_keys("mock", native_mux=True, fail_after=3)
        bids = sealbid.encrypt_bids(client, [1, 0], 1)

        with pytest.raises(GateEvaluationError) as info:
            sealbid.evaluate(engine, bids, 1, 2)

        assert info.value.gate == "mux"
        assert info.value.round_index == 0

    def test_bids_under_foreign_key(self):
        other_client, _ = sealbid.gen_keys("mock")
        _, engine = sealbid.gen_keys("mock")
        bids = sealbid.encrypt_bids(other_client, [2, 1], 2)

        with pytest.raises(GateEvaluationError) as info:
            sealbid.evaluate(engine, bids, 2, 2)

        assert isinstance(info.value.__cause__, KeyMismatchError)
        assert info.value.round_index == 0

    def test_setup_failure(self, mock_keys):
        client, engine = mock_keys

        def broken(bit):
            raise EngineFaultError("out of memory")

        engine.trivial_encrypt = broken
        bids = sealbid.encrypt_bids(client, [2, 1], 2)

        with pytest.raises(GateEvaluationError, match="during setup") as info:
            sealbid.evaluate(engine, bids, 2, 2)
        assert info.value.round_index is None

    def test_failure_is_logged(self, caplog):
        client, engine = sealbid.gen_keys("mock", fail_after=0)
        bids = sealbid.encrypt_bids(client, [2, 1], 2)

        sealbid.setup_logging(level="WARNING", propagate=True)
        try:
            with caplog.at_level(logging.WARNING, logger="sealbid"):
                with pytest.raises(GateEvaluationError):
                    sealbid.evaluate(engine, bids, 2, 2)
        finally:
            sealbid.disable_logging()

        assert "auction evaluation aborted" in caplog.text


class TestCancellation:
    """Cancellation is honoured at round boundaries only."""

    def test_cancel_before_start(self, mock_keys):
        client, engine = mock_keys
        counted = CountingGateEngine(engine)
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(EvaluationCancelledError) as info:
            sealbid.evaluate(
                counted, sealbid.encrypt_bids(client, [1, 2], 2), 2, 2, cancel=cancel
            )

        assert info.value.round_index == 0
        assert counted.stats.total == 0

    def test_cancel_between_rounds(self, mock_keys):
        client, engine = mock_keys
        cancel = threading.Event()
        seen = []

        def on_round(state):
            seen.append(state.round_index)
            if state.round_index == 1:
                cancel.set()

        circuit = AuctionCircuit(engine, EvaluatorConfig(max_workers=2))
        with pytest.raises(EvaluationCancelledError) as info:
            circuit.evaluate(
                sealbid.encrypt_bids(client, [9, 3, 12], 4),
                4,
                3,
                cancel=cancel,
                on_round=on_round,
            )

        assert seen == [0, 1]
        assert info.value.round_index == 2

    def test_unset_event_runs_to_completion(self, mock_keys):
        client, engine = mock_keys
        mask, amount = sealbid.evaluate(
            engine,
            sealbid.encrypt_bids(client, [9, 3, 12], 4),
            4,
            3,
            cancel=threading.Event(),
        )
        assert sealbid.decrypt_amount(client, amount) == 12
        assert sealbid.decrypt_winners(client, mask) == [2]
