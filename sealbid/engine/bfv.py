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

"""BFV gate engine backed by TenSEAL.

Every bit is a one-slot ``BFVVector`` holding 0 or 1. Boolean gates become
arithmetic over the plaintext modulus:

    AND(a, b)      = a * b
    OR(a, b)       = a + b - a * b
    NOT(a)         = 1 - a
    MUX(s, a, b)   = b + s * (a - b)

BFV is levelled: there is no bootstrapping, so every ciphertext carries the
multiplicative depth that produced it and the engine refuses to go past
``max_depth``. The auction circuit deepens by roughly ``ceil(log2 n) + 2``
levels per bit, so this engine is only practical for small auctions.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any

import tenseal as ts

from sealbid.engine.base import (
    GateEngine,
    KeyMismatchError,
    NoiseBudgetError,
    engine_def,
)

__all__ = ["BFVBit", "BFVClientKey", "BFVGateEngine", "gen_keys"]

# Conservative multiplicative depth per ring size with the default coefficient
# modulus and a 17-bit plaintext modulus.
DEFAULT_MAX_DEPTH: dict[int, int] = {
    8192: 4,
    16384: 8,
    32768: 16,
}

_key_ids = itertools.count(1)


@dataclass(frozen=True)
class BFVBit:
    vec: Any  # ts.BFVVector with a single slot
    depth: int
    key_id: int

    def __repr__(self) -> str:
        return f"BFVBit(depth={self.depth}, key_id={self.key_id})"


class _BFVKeyed:
    def __init__(self, context: ts.Context, key_id: int):
        self.context = context
        self.key_id = key_id

    def _fresh(self, bit: bool) -> BFVBit:
        return BFVBit(ts.bfv_vector(self.context, [int(bool(bit))]), 0, self.key_id)

    def _check(self, *cts: BFVBit) -> None:
        for ct in cts:
            if not isinstance(ct, BFVBit):
                raise TypeError(f"Expected BFVBit, got {type(ct).__name__}")
            if ct.key_id != self.key_id:
                raise KeyMismatchError(
                    f"ciphertext from key {ct.key_id} used with key {self.key_id}"
                )


class BFVClientKey(_BFVKeyed):
    """Holds the secret key; encrypts bids and decrypts auction results."""

    def __init__(
        self, context: ts.Context, secret_key: Any, key_id: int, plain_modulus: int
    ):
        super().__init__(context, key_id)
        self._secret_key = secret_key
        self.plain_modulus = plain_modulus

    def encrypt(self, bit: bool) -> BFVBit:
        return self._fresh(bit)

    def decrypt(self, ct: BFVBit) -> bool:
        self._check(ct)
        value = int(ct.vec.decrypt(self._secret_key)[0]) % self.plain_modulus
        if value not in (0, 1):
            raise ValueError(
                f"decrypted value {value} is not a bit; the ciphertext noise "
                f"budget was exhausted (depth {ct.depth})"
            )
        return value == 1


class BFVGateEngine(_BFVKeyed, GateEngine):
    """Evaluation side: public context only, never the secret key."""

    # TenSEAL contexts share SEAL evaluator state; gates are issued serially.
    thread_safe = False
    supports_mux = True

    def __init__(self, context: ts.Context, key_id: int, max_depth: int):
        if context.has_secret_key():
            raise ValueError("BFVGateEngine must not hold the secret key")
        super().__init__(context, key_id)
        self.max_depth = max_depth

    def _mul_depth(self, gate: str, *cts: BFVBit) -> int:
        depth = max(ct.depth for ct in cts) + 1
        if depth > self.max_depth:
            raise NoiseBudgetError(
                f"{gate} would reach depth {depth} > max_depth {self.max_depth}"
            )
        return depth

    def and_(self, a: BFVBit, b: BFVBit) -> BFVBit:
        self._check(a, b)
        depth = self._mul_depth("and", a, b)
        return BFVBit(a.vec * b.vec, depth, self.key_id)

    def or_(self, a: BFVBit, b: BFVBit) -> BFVBit:
        self._check(a, b)
        depth = self._mul_depth("or", a, b)
        return BFVBit(a.vec + b.vec - a.vec * b.vec, depth, self.key_id)

    def not_(self, a: BFVBit) -> BFVBit:
        self._check(a)
        one = self._fresh(True)
        return BFVBit(one.vec - a.vec, a.depth, self.key_id)

    def trivial_encrypt(self, bit: bool) -> BFVBit:
        # Public-key encryption of a constant; no secret key involved.
        return self._fresh(bit)

    def mux(self, sel: BFVBit, a: BFVBit, b: BFVBit) -> BFVBit:
        self._check(sel, a, b)
        depth = self._mul_depth("mux", sel, a, b)
        return BFVBit(b.vec + sel.vec * (a.vec - b.vec), depth, self.key_id)

    def __repr__(self) -> str:
        return f"BFVGateEngine(key_id={self.key_id}, max_depth={self.max_depth})"


@engine_def("bfv", secure=True)
def gen_keys(
    poly_modulus_degree: int = 16384,
    plain_modulus: int = 65537,
    max_depth: int | None = None,
) -> tuple[BFVClientKey, BFVGateEngine]:
    """Generate a BFV key pair.

    Returns:
        ``(client_key, engine)``: the client key carries the secret key, the
        engine only a public copy of the context (public and relin keys).
    """
    if max_depth is None:
        if poly_modulus_degree not in DEFAULT_MAX_DEPTH:
            raise ValueError(
                f"no default max_depth for poly_modulus_degree={poly_modulus_degree}; "
                "pass max_depth explicitly"
            )
        max_depth = DEFAULT_MAX_DEPTH[poly_modulus_degree]

    try:
        context = ts.context(
            ts.SCHEME_TYPE.BFV,
            poly_modulus_degree=poly_modulus_degree,
            plain_modulus=plain_modulus,
        )
        context.generate_relin_keys()
    except Exception as e:
        raise RuntimeError(f"Failed to generate BFV context: {e}") from e

    secret_key = context.secret_key()
    public_context = ts.context_from(
        context.serialize(save_secret_key=False, save_galois_keys=False)
    )

    key_id = next(_key_ids)
    client = BFVClientKey(public_context, secret_key, key_id, plain_modulus)
    engine = BFVGateEngine(public_context, key_id, max_depth)
    return client, engine
