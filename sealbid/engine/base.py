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

"""Gate engine capability interface and engine registry.

The auction circuit only needs a handful of boolean gates over opaque
ciphertexts. This module defines that capability set and a lightweight
registry of key-generation factories, one per backend.

Exposed primitives:
* ``GateEngine``: evaluation-side capability (AND, OR, NOT, trivial
  encryption, optional native MUX). Holds evaluation keys only.
* ``BitCipher``: client-side capability (encrypt/decrypt single bits).
* ``@engine_def(name)``: decorator to register a key-generation factory.
* ``gen_keys(name, **params)``: look up a factory and return
  ``(client_key, engine)``.
* ``SerializedGateEngine``: wraps an engine that is not safe for concurrent
  use so that gate calls are issued one at a time.
"""

from __future__ import annotations

import importlib
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from sealbid.logging_config import get_logger

__all__ = [
    "BitCipher",
    "EngineFaultError",
    "EngineSpec",
    "GateEngine",
    "GateEngineError",
    "KeyMismatchError",
    "NoiseBudgetError",
    "SerializedGateEngine",
    "UnknownEngineError",
    "engine_def",
    "gen_keys",
    "get_engine_spec",
    "list_engines",
    "load_builtins",
]

logger = get_logger(__name__)

Ciphertext = Any


class GateEngineError(Exception):
    """Base exception for engine-level gate failures."""


class EngineFaultError(GateEngineError):
    """Internal engine fault while evaluating a gate."""


class KeyMismatchError(GateEngineError):
    """Operands were produced under incompatible keys."""


class NoiseBudgetError(GateEngineError):
    """The ciphertext can not absorb another multiplication."""


class UnknownEngineError(KeyError):
    """Raised when an engine name is not registered."""


class BitCipher(Protocol):
    """Client-side key: the only party able to decrypt results."""

    def encrypt(self, bit: bool) -> Ciphertext: ...

    def decrypt(self, ct: Ciphertext) -> bool: ...


class GateEngine(ABC):
    """Homomorphic boolean gates over opaque ciphertexts.

    Subclasses raise a :class:`GateEngineError` (or any other exception) when a
    gate can not be evaluated; callers treat every exception as fatal.
    """

    #: True when gates on independent ciphertexts may be evaluated concurrently.
    thread_safe: bool = True

    #: True when :meth:`mux` is implemented natively.
    supports_mux: bool = False

    @abstractmethod
    def and_(self, a: Ciphertext, b: Ciphertext) -> Ciphertext: ...

    @abstractmethod
    def or_(self, a: Ciphertext, b: Ciphertext) -> Ciphertext: ...

    @abstractmethod
    def not_(self, a: Ciphertext) -> Ciphertext: ...

    @abstractmethod
    def trivial_encrypt(self, bit: bool) -> Ciphertext:
        """Encrypt a public constant without the client key."""

    def mux(self, sel: Ciphertext, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        """Return ``a`` where ``sel`` is true, else ``b``.

        Optional capability: only engines with ``supports_mux`` set implement
        it. The default raises :class:`GateEngineError`.
        """
        raise GateEngineError(f"{type(self).__name__} has no native mux")


class SerializedGateEngine(GateEngine):
    """Forward every gate to ``inner`` while holding a single lock."""

    thread_safe = True

    def __init__(self, inner: GateEngine):
        self.inner = inner
        self.supports_mux = inner.supports_mux
        self._lock = threading.Lock()

    def and_(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        with self._lock:
            return self.inner.and_(a, b)

    def or_(self, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        with self._lock:
            return self.inner.or_(a, b)

    def not_(self, a: Ciphertext) -> Ciphertext:
        with self._lock:
            return self.inner.not_(a)

    def trivial_encrypt(self, bit: bool) -> Ciphertext:
        with self._lock:
            return self.inner.trivial_encrypt(bit)

    def mux(self, sel: Ciphertext, a: Ciphertext, b: Ciphertext) -> Ciphertext:
        with self._lock:
            return self.inner.mux(sel, a, b)

    def __repr__(self) -> str:
        return f"SerializedGateEngine({self.inner!r})"


# ---------------- Registry ----------------

# Factory signature: (**params) -> (client_key, engine)
KeyGenFn = Callable[..., tuple[BitCipher, GateEngine]]


@dataclass
class EngineSpec:
    name: str
    keygen: KeyGenFn
    meta: dict[str, Any]


_ENGINES: dict[str, EngineSpec] = {}


def engine_def(name: str, /, **meta: Any) -> Callable[[KeyGenFn], KeyGenFn]:
    """Decorator registering a key-generation factory under ``name``."""

    def _decorator(fn: KeyGenFn) -> KeyGenFn:
        if name in _ENGINES:
            raise ValueError(f"duplicate engine name={name}")
        _ENGINES[name] = EngineSpec(name=name, keygen=fn, meta=dict(meta))
        return fn

    return _decorator


_BUILTIN_ENGINES = [
    "sealbid.engine.mock",
    "sealbid.engine.bfv",
]
_builtins_loaded = False
_builtins_lock = threading.Lock()


def load_engine(module_name: str) -> None:
    """Import an engine module for its registration side effect."""
    try:
        importlib.import_module(module_name)
        logger.debug(f"Loaded engine: {module_name}")
    except ImportError as e:
        raise ImportError(f"Failed to load engine '{module_name}': {e}") from e


def load_builtins() -> None:
    """Load all built-in engines."""
    global _builtins_loaded
    if _builtins_loaded:
        return
    with _builtins_lock:
        if _builtins_loaded:
            return
        for module_name in _BUILTIN_ENGINES:
            try:
                load_engine(module_name)
            except ImportError as e:
                logger.warning(f"Could not load built-in engine '{module_name}': {e}")
        _builtins_loaded = True


def get_engine_spec(name: str) -> EngineSpec:
    load_builtins()
    spec = _ENGINES.get(name)
    if spec is None:
        raise UnknownEngineError(
            f"engine '{name}' not registered (available: {sorted(_ENGINES)})"
        )
    return spec


def list_engines() -> list[str]:
    load_builtins()
    return sorted(_ENGINES.keys())


def gen_keys(name: str, **params: Any) -> tuple[BitCipher, GateEngine]:
    """Generate a fresh ``(client_key, engine)`` pair for backend ``name``."""
    return get_engine_spec(name).keygen(**params)
