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

"""Insecure cleartext gate engine.

``MockBit`` carries its plaintext bit; nothing here is encrypted. The engine
exists to exercise the auction circuit quickly and deterministically in tests
and during development. Each encryption still draws a fresh nonce so that
re-encrypting the same bid yields distinct ciphertext objects, and gates check
that their operands belong to the same key, like a real engine would.
"""

from __future__ import annotations

import itertools
import os
import threading
import warnings
from dataclasses import dataclass, field

import numpy as np

from sealbid.engine.base import (
    EngineFaultError,
    GateEngine,
    KeyMismatchError,
    engine_def,
)

__all__ = ["MockBit", "MockClientKey", "MockGateEngine", "gen_keys"]

_key_ids = itertools.count(1)


@dataclass(frozen=True)
class MockBit:
    value: bool = field(repr=False)
    key_id: int
    nonce: int


class _Keyed:
    def __init__(self, key_id: int, rng: np.random.Generator):
        self.key_id = key_id
        self._rng = rng
        self._rng_lock = threading.Lock()

    def _make(self, bit: bool) -> MockBit:
        with self._rng_lock:
            nonce = int(self._rng.integers(0, 2**62))
        return MockBit(bool(bit), self.key_id, nonce)

    def _check(self, *cts: MockBit) -> None:
        for ct in cts:
            if not isinstance(ct, MockBit):
                raise TypeError(f"Expected MockBit, got {type(ct).__name__}")
            if ct.key_id != self.key_id:
                raise KeyMismatchError(
                    f"ciphertext from key {ct.key_id} used with key {self.key_id}"
                )


class MockClientKey(_Keyed):
    """Client side of the mock engine."""

    def encrypt(self, bit: bool) -> MockBit:
        return self._make(bit)

    def decrypt(self, ct: MockBit) -> bool:
        self._check(ct)
        return ct.value


class MockGateEngine(_Keyed, GateEngine):
    """Cleartext boolean gates.

    Args:
        fail_after: if set, every gate after this many successful gates raises
            :class:`EngineFaultError`.
        native_mux: advertise and implement :meth:`mux`.
        thread_safe: value of the ``thread_safe`` flag, so tests can drive the
            evaluator's serialization path.
    """

    def __init__(
        self,
        key_id: int,
        rng: np.random.Generator,
        *,
        fail_after: int | None = None,
        native_mux: bool = False,
        thread_safe: bool = True,
    ):
        super().__init__(key_id, rng)
        self.fail_after = fail_after
        self.supports_mux = native_mux
        self.thread_safe = thread_safe
        self._issued = 0
        self._count_lock = threading.Lock()

    def _tick(self, gate: str) -> None:
        if self.fail_after is None:
            return
        with self._count_lock:
            self._issued += 1
            issued = self._issued
        if issued > self.fail_after:
            raise EngineFaultError(f"injected fault on {gate} gate #{issued}")

    def and_(self, a: MockBit, b: MockBit) -> MockBit:
        self._check(a, b)
        self._tick("and")
        return self._make(a.value and b.value)

    def or_(self, a: MockBit, b: MockBit) -> MockBit:
        self._check(a, b)
        self._tick("or")
        return self._make(a.value or b.value)

    def not_(self, a: MockBit) -> MockBit:
        self._check(a)
        self._tick("not")
        return self._make(not a.value)

    def trivial_encrypt(self, bit: bool) -> MockBit:
        return self._make(bit)

    def mux(self, sel: MockBit, a: MockBit, b: MockBit) -> MockBit:
        if not self.supports_mux:
            return super().mux(sel, a, b)
        self._check(sel, a, b)
        self._tick("mux")
        return self._make(a.value if sel.value else b.value)

    def __repr__(self) -> str:
        return f"MockGateEngine(key_id={self.key_id}, native_mux={self.supports_mux})"


@engine_def("mock", secure=False)
def gen_keys(
    seed: int | None = None,
    *,
    fail_after: int | None = None,
    native_mux: bool = False,
    thread_safe: bool = True,
) -> tuple[MockClientKey, MockGateEngine]:
    """Return a ``(client_key, engine)`` pair sharing one mock key."""
    warnings.warn(
        "Insecure mock gate engine in use. NOT secure; for local testing only.",
        stacklevel=2,
    )
    if seed is None:
        env_seed = os.environ.get("SEALBID_MOCK_SEED")
        seed = int(env_seed) if env_seed is not None else None
    key_id = next(_key_ids)
    client_rng, engine_rng = np.random.default_rng(seed).spawn(2)
    client = MockClientKey(key_id, client_rng)
    engine = MockGateEngine(
        key_id,
        engine_rng,
        fail_after=fail_after,
        native_mux=native_mux,
        thread_safe=thread_safe,
    )
    return client, engine
