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

"""Client-side encoding of bids and decoding of auction results.

Bids are unsigned integers split into ``bit_width`` bits, most significant
bit first, each bit encrypted independently with the client key.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

import numpy as np
from numpy.typing import NDArray

from sealbid.engine.base import BitCipher

__all__ = [
    "bid_to_bits",
    "bits_to_int",
    "decrypt_amount",
    "decrypt_mask",
    "decrypt_winners",
    "encrypt_bids",
]


def bid_to_bits(value: int, bit_width: int) -> NDArray[np.bool_]:
    """Split ``value`` into ``bit_width`` bits, MSB first."""
    if bit_width < 1:
        raise ValueError(f"bit_width must be >= 1, got {bit_width}")
    value = int(value)
    if value < 0 or value >> bit_width:
        raise ValueError(f"bid {value} does not fit in {bit_width} unsigned bits")
    return np.fromiter(
        ((value >> shift) & 1 for shift in range(bit_width - 1, -1, -1)),
        dtype=np.bool_,
        count=bit_width,
    )


def bits_to_int(bits: Iterable[Any]) -> int:
    """Inverse of :func:`bid_to_bits`."""
    out = 0
    for bit in bits:
        out = (out << 1) | int(bool(bit))
    return out


def encrypt_bids(
    client: BitCipher, values: Sequence[int], bit_width: int
) -> list[list[Any]]:
    """Encrypt every bid bit by bit, producing a bid matrix."""
    return [
        [client.encrypt(bool(bit)) for bit in bid_to_bits(value, bit_width)]
        for value in values
    ]


def decrypt_amount(client: BitCipher, amount: Sequence[Any]) -> int:
    """Decrypt the winning amount (MSB first) into an integer."""
    return bits_to_int(client.decrypt(ct) for ct in amount)


def decrypt_mask(client: BitCipher, mask: Sequence[Any]) -> NDArray[np.bool_]:
    return np.array([client.decrypt(ct) for ct in mask], dtype=np.bool_)


def decrypt_winners(client: BitCipher, mask: Sequence[Any]) -> list[int]:
    """Indices of the bidders flagged in the winner mask."""
    return [int(i) for i in np.flatnonzero(decrypt_mask(client, mask))]
