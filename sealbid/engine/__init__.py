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

"""Gate engines the auction circuit can run on."""

from sealbid.engine.base import (
    BitCipher,
    EngineFaultError,
    GateEngine,
    GateEngineError,
    KeyMismatchError,
    NoiseBudgetError,
    SerializedGateEngine,
    UnknownEngineError,
    engine_def,
    gen_keys,
    list_engines,
)
from sealbid.engine.stats import CountingGateEngine, GateStats

__all__ = [
    "BitCipher",
    "CountingGateEngine",
    "EngineFaultError",
    "GateEngine",
    "GateEngineError",
    "GateStats",
    "KeyMismatchError",
    "NoiseBudgetError",
    "SerializedGateEngine",
    "UnknownEngineError",
    "engine_def",
    "gen_keys",
    "list_engines",
]
