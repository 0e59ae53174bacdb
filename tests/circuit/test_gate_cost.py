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

"""Gate counts of the auction circuit."""

import math

import pytest

import sealbid
from sealbid.config import EvaluatorConfig
from sealbid.engine.stats import CountingGateEngine


def _count(bidder_count, bit_width, *, native_mux, reduction="tree"):
    client, engine = sealbid.gen_keys("mock", native_mux=native_mux)
    counted = CountingGateEngine(engine)
    values = [(7 * j + 3) % (2**bit_width) for j in range(bidder_count)]
    sealbid.evaluate(
        counted,
        sealbid.encrypt_bids(client, values, bit_width),
        bit_width,
        bidder_count,
        config=EvaluatorConfig(max_workers=4, reduction=reduction),
    )
    return counted.stats


class TestGateCost:
    @pytest.mark.parametrize("bidder_count", [2, 3, 5, 8])
    @pytest.mark.parametrize("bit_width", [1, 4])
    @pytest.mark.parametrize("reduction", ["tree", "linear"])
    def test_decomposed_select(self, bidder_count, bit_width, reduction):
        """n AND + (n-1) OR + NOT + 2n AND + n OR per round."""
        stats = _count(bidder_count, bit_width, native_mux=False, reduction=reduction)
        n = bidder_count
        assert stats.and_ == 3 * n * bit_width
        assert stats.or_ == (2 * n - 1) * bit_width
        assert stats.not_ == bit_width
        assert stats.mux == 0
        assert stats.trivial == n

    @pytest.mark.parametrize("bidder_count", [2, 6])
    def test_native_mux(self, bidder_count):
        """One mux per bidder replaces AND/AND/OR and the NOT disappears."""
        stats = _count(bidder_count, 3, native_mux=True)
        n = bidder_count
        assert stats.and_ == n * 3
        assert stats.or_ == (n - 1) * 3
        assert stats.not_ == 0
        assert stats.mux == n * 3

    def test_total_is_linear_in_bidders_and_bits(self):
        small = _count(4, 4, native_mux=False).total
        assert _count(8, 4, native_mux=False).total < 2.1 * small
        assert _count(4, 8, native_mux=False).total == 2 * small

    def test_reset_returns_and_clears(self, mock_keys):
        client, engine = mock_keys
        counted = CountingGateEngine(engine)
        counted.and_(client.encrypt(True), client.encrypt(False))

        stats = counted.reset()

        assert stats.to_dict() == {"and": 1, "or": 0, "not": 0, "mux": 0, "trivial": 0}
        assert counted.stats.total == 0


class TestReductionDepth:
    """The tree reduction chains at most ceil(log2 n) ORs."""

    @pytest.mark.parametrize("bidder_count", [2, 3, 4, 7, 16])
    def test_tree_depth(self, mock_keys, bidder_count):
        client, engine = mock_keys
        depth = {}

        def _depth(ct):
            return depth[id(ct)][0] if id(ct) in depth else 0

        class DepthEngine(CountingGateEngine):
            def or_(self, a, b):
                out = super().or_(a, b)
                # keep `out` alive so its id is never reused
                depth[id(out)] = (max(_depth(a), _depth(b)) + 1, out)
                return out

        tracker = DepthEngine(engine)
        bids = sealbid.encrypt_bids(client, list(range(bidder_count)), 5)
        states = []
        sealbid.evaluate(
            tracker,
            bids,
            5,
            bidder_count,
            config=EvaluatorConfig(max_workers=1, native_mux=False),
            on_round=states.append,
        )

        for state in states:
            assert _depth(state.decision) == math.ceil(math.log2(bidder_count))
