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

"""Tutorial 0: Sealed-bid auction over encrypted bids

The auctioneer learns nothing about the bids. It runs the auction circuit on
bit-by-bit encrypted bids and hands back two encrypted results that only the
key holder can read:

1. The key holder generates a client key and a gate engine
2. Each bid is split into bits (MSB first) and every bit is encrypted
3. The auctioneer evaluates the circuit with the engine only
4. The key holder decrypts the winning amount and the winner mask

Ties are reported as several winners.
"""

import sys
import threading

import sealbid


def mock_auction(bids=(5, 6, 4), bit_width=3):
    """Run an auction on the insecure mock engine (fast; for development)."""
    client, engine = sealbid.gen_keys("mock", seed=0)

    encrypted = sealbid.encrypt_bids(client, bids, bit_width)
    mask, amount = sealbid.evaluate(engine, encrypted, bit_width, len(bids))

    return sealbid.decrypt_amount(client, amount), sealbid.decrypt_winners(
        client, mask
    )


def counted_auction(bids=(13, 2, 13, 11), bit_width=4):
    """Same auction, counting every gate the circuit issues."""
    client, engine = sealbid.gen_keys("mock", seed=0)
    counted = sealbid.CountingGateEngine(engine)

    rounds = []
    sealbid.evaluate(
        counted,
        sealbid.encrypt_bids(client, bids, bit_width),
        bit_width,
        len(bids),
        cancel=threading.Event(),
        on_round=lambda state: rounds.append(client.decrypt(state.decision)),
    )
    return counted.stats, rounds


def bfv_auction(bids=(2, 3), bit_width=2):
    """Run a small auction under real BFV encryption (TenSEAL).

    BFV has no bootstrapping, so only a handful of bits and bidders fit in
    the default depth budget.
    """
    client, engine = sealbid.gen_keys("bfv")

    encrypted = sealbid.encrypt_bids(client, bids, bit_width)
    mask, amount = sealbid.evaluate(engine, encrypted, bit_width, len(bids))

    return sealbid.decrypt_amount(client, amount), sealbid.decrypt_winners(
        client, mask
    )


def main():
    sealbid.setup_logging(level="INFO")

    print("=" * 70)
    print("Sealed-bid Auction Tutorial")
    print("=" * 70)

    print("\n--- Example 1: Mock engine ---")
    amount, winners = mock_auction()
    print(f"Winning amount: {amount}, winners: {winners}")

    print("\n--- Example 2: Ties ---")
    amount, winners = mock_auction(bids=(5, 5, 3))
    print(f"Winning amount: {amount}, winners: {winners}")

    print("\n--- Example 3: Gate cost ---")
    stats, decisions = counted_auction()
    print(f"Gates issued: {stats.to_dict()} (total {stats.total})")
    print(f"Amount bits, MSB first: {[int(b) for b in decisions]}")

    if "bfv" in sealbid.list_engines():
        print("\n--- Example 4: BFV engine ---")
        amount, winners = bfv_auction()
        print(f"Winning amount: {amount}, winners: {winners}")
    else:
        print("\nTenSEAL not available; skipping the BFV example.", file=sys.stderr)


if __name__ == "__main__":
    main()
