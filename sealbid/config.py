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

"""
Configuration for the auction evaluator and its gate engine.

A YAML file looks like::

    engine:
      name: bfv
      params:
        poly_modulus_degree: 16384
    evaluator:
      max_workers: 8
      reduction: tree
      native_mux: true

``SEALBID_MAX_WORKERS`` overrides the default worker count when the file (or
the caller) does not set one.
"""

from __future__ import annotations

import os
import pathlib
from dataclasses import dataclass, field
from typing import Any

import yaml

from sealbid.engine.base import BitCipher, GateEngine, gen_keys

__all__ = [
    "EngineConfig",
    "EvaluatorConfig",
    "SealbidConfig",
    "load_config",
]

REDUCTIONS = ("tree", "linear")


def _default_max_workers() -> int:
    env = os.environ.get("SEALBID_MAX_WORKERS")
    if env:
        return int(env)
    return min(32, (os.cpu_count() or 1) + 4)


@dataclass(frozen=True)
class EvaluatorConfig:
    """Scheduling knobs of the auction circuit.

    ``max_workers == 1`` evaluates every gate on the calling thread.
    ``reduction`` selects how the per-round OR is grouped; ``"tree"`` has
    logarithmic depth, ``"linear"`` is a left fold. ``native_mux`` lets the
    evaluator use the engine's multiplexer when it advertises one.
    """

    max_workers: int = field(default_factory=_default_max_workers)
    reduction: str = "tree"
    native_mux: bool = True

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.reduction not in REDUCTIONS:
            raise ValueError(
                f"reduction must be one of {REDUCTIONS}, got '{self.reduction}'"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_workers": self.max_workers,
            "reduction": self.reduction,
            "native_mux": self.native_mux,
        }

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> EvaluatorConfig:
        unknown = set(config) - {"max_workers", "reduction", "native_mux"}
        if unknown:
            raise ValueError(f"Unknown evaluator config keys: {sorted(unknown)}")
        return cls(**config)


@dataclass(frozen=True)
class EngineConfig:
    """Which registered gate engine to generate keys for, and its parameters."""

    name: str = "mock"
    params: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "params": dict(self.params)}

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> EngineConfig:
        if "name" not in config:
            raise ValueError("Engine config must contain 'name'.")
        return cls(name=config["name"], params=dict(config.get("params") or {}))

    def gen_keys(self) -> tuple[BitCipher, GateEngine]:
        return gen_keys(self.name, **self.params)


@dataclass(frozen=True)
class SealbidConfig:
    engine: EngineConfig = field(default_factory=EngineConfig)
    evaluator: EvaluatorConfig = field(default_factory=EvaluatorConfig)

    def to_dict(self) -> dict[str, Any]:
        return {
            "engine": self.engine.to_dict(),
            "evaluator": self.evaluator.to_dict(),
        }

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> SealbidConfig:
        """Parse a raw config dictionary; missing sections take defaults."""
        unknown = set(config) - {"engine", "evaluator"}
        if unknown:
            raise ValueError(f"Unknown config sections: {sorted(unknown)}")
        engine = EngineConfig.from_dict(config.get("engine") or {"name": "mock"})
        evaluator = EvaluatorConfig.from_dict(config.get("evaluator") or {})
        return cls(engine=engine, evaluator=evaluator)


def load_config(path: str | pathlib.Path) -> SealbidConfig:
    """Load a :class:`SealbidConfig` from a YAML file."""
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return SealbidConfig.from_dict(raw)
