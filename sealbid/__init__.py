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

"""Sealed-bid highest-price auctions evaluated over encrypted bids.

    import sealbid

    client, engine = sealbid.gen_keys("mock")
    bids = sealbid.encrypt_bids(client, [5, 6, 4], bit_width=3)
    mask, amount = sealbid.evaluate(engine, bids, bit_width=3, bidder_count=3)
    sealbid.decrypt_amount(client, amount)   # 6
    sealbid.decrypt_winners(client, mask)    # [1]
"""

# Version comes from the installed distribution metadata
try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("sealbid")
except PackageNotFoundError:
    # Fallback for development/editable installs when package is not installed
    __version__ = "0.0.0-dev"

from sealbid.circuit import (
    AuctionCircuit,
    AuctionResult,
    RoundState,
    evaluate,
    validate_bid_matrix,
)
from sealbid.codec import (
    bid_to_bits,
    bits_to_int,
    decrypt_amount,
    decrypt_mask,
    decrypt_winners,
    encrypt_bids,
)
from sealbid.config import EngineConfig, EvaluatorConfig, SealbidConfig, load_config
from sealbid.engine import (
    CountingGateEngine,
    GateEngine,
    GateEngineError,
    gen_keys,
    list_engines,
)
from sealbid.errors import (
    AuctionError,
    EvaluationCancelledError,
    GateEvaluationError,
    InputShapeError,
)
from sealbid.logging_config import disable_logging, get_logger, setup_logging

__all__ = [
    "AuctionCircuit",
    "AuctionError",
    "AuctionResult",
    "CountingGateEngine",
    "EngineConfig",
    "EvaluationCancelledError",
    "EvaluatorConfig",
    "GateEngine",
    "GateEngineError",
    "GateEvaluationError",
    "InputShapeError",
    "RoundState",
    "SealbidConfig",
    "__version__",
    "bid_to_bits",
    "bits_to_int",
    "decrypt_amount",
    "decrypt_mask",
    "decrypt_winners",
    "disable_logging",
    "encrypt_bids",
    "evaluate",
    "gen_keys",
    "get_logger",
    "list_engines",
    "load_config",
    "setup_logging",
    "validate_bid_matrix",
]
