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

"""Plaintext references shared by the test suites."""


def reference_auction(values: list[int]) -> tuple[int, list[int]]:
    """Plaintext outcome: (maximum bid, indices of every bidder holding it)."""
    top = max(values)
    return top, [j for j, v in enumerate(values) if v == top]


def bid_prefix(value: int, bit_width: int, rounds: int) -> int:
    """The first ``rounds`` bits of ``value``, MSB first."""
    return value >> (bit_width - rounds)
