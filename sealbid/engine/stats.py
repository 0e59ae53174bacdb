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

"""Gate accounting.

Gate evaluations dominate the wall-clock cost of a homomorphic circuit, so the
number of gates issued is the figure of merit when comparing circuit variants.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from sealbid.engine.base import Ciphertext, GateEngine

__all__ = ["CountingGateEngine", "GateStats"]


@dataclass
class GateStats:
    and_: int = 0
    or_: int = 0
    not_: int = 0
    mux: int = 0
    trivial: int = 0

    @property
    def total(self) -> int:
        """Gates that cost a bootstrap-equivalent (trivial encryptions excluded)."""
        return self.and_ + self.or_ + self.not_ + self.mux

    def to_dict(self) -> dict[str, int]:
        return {
            "and": self.and_,
            "or": self.or_,
            "not": self.not_,
            "mux": self.mux,
            "trivial": self.trivial,
        }


class CountingGateEngine(GateEngine):
    """Wrap an engine and count every gate issued through it.

    Counting is lock-protected so the wrapper may be shared by the evaluator's
    worker threads; the wrapped engine keeps its own ``thread_safe`` contract.
    """

    def __init__(self, inner: GateEngine):
        self.inner = inner
        self.thread_safe = inner.thread_safe
        self.supports_mux = inner.supports_mux
        self.stats = GateStats()
        self._lock = threading.Lock()

    def _bump(self, field: str) -> None:
        with self._lock:
            setattr(self.stats, field, getattr(self.stats, field) + 1)

    def reset(self) -> GateStats:
        """Return the current counters and start from zero."""
        with self._lock:
            stats, self.stats = self.stats, GateStats()
        return stats

    def and_(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        self._bump("and_")
        return self.inner.and_(a, b)

    def or_(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        self._bump("or_")
        return self.inner.or_(a, b)

    def not_(self, a: Ciphertext) -> Ciphertext:
        self._bump("not_")
        return self.inner.not_(a)

    def trivial_encrypt(self, bit: bool) -> Ciphertext:
        self._bump("trivial")
        return self.inner.trivial_encrypt(bit)

    def mux(self, sel: Ciphertext, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        self._bump("mux")
        return self.inner.mux(sel, a, b)
