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

import pytest

import sealbid
from sealbid.config import EvaluatorConfig


@pytest.fixture
def mock_keys():
    return sealbid.gen_keys("mock", seed=7)


@pytest.fixture
def run_auction():
    """Encrypt ``values`` under a fresh mock key, evaluate, and decrypt.

    Returns ``(amount, winners)`` as plaintext.
    """

    def _run(values, bit_width, *, config=None, **engine_params):
        client, engine = sealbid.gen_keys("mock", **engine_params)
        bids = sealbid.encrypt_bids(client, values, bit_width)
        mask, amount = sealbid.evaluate(
            engine,
            bids,
            bit_width,
            len(values),
            config=config or EvaluatorConfig(max_workers=4),
        )
        return sealbid.decrypt_amount(client, amount), sealbid.decrypt_winners(
            client, mask
        )

    return _run
