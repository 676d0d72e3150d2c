#!/usr/bin/env python3
"""
Quick start guide for the privacy-pool client.

Runs a deposit, a partial withdrawal and the change withdrawal against the
in-memory reference ledger with the mock proving backend.
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from zkpool.config import Settings
from zkpool.core.mixer import PrivacyPoolClient
from zkpool.core.note import decode_note, encode_note
from zkpool.core.prover import MockProvingBackend, ProverContext
from zkpool.crypto.hasher import get_hasher
from zkpool.ledger.memory import InMemoryLedger


def main():
    """Run a simple example of the deposit/withdraw flow."""

    print("=" * 70)
    print("PRIVACY POOL QUICK START EXAMPLE")
    print("=" * 70)
    print()

    settings = Settings(tree_depth=8)
    hasher = get_hasher(settings.hasher)

    with ProverContext(MockProvingBackend(hasher)) as prover:
        ledger = InMemoryLedger.from_settings(prover, settings)

        with PrivacyPoolClient(ledger, prover, settings) as pool:
            # Step 1: deposit
            print("Step 1: Deposit 1_000_000_000 units")
            print("-" * 70)
            note = pool.deposit(1_000_000_000)
            encoded = encode_note(note, hasher)
            print(f"✓ Deposit confirmed: {note.settlement_ref}")
            print(f"  Commitment: {note.commitment.hex()[:32]}...")
            print(f"  Note (keep secret!): {encoded[:48]}...")
            print()

            # Step 2: other users deposit
            print("Step 2: Two other deposits grow the anonymity set")
            print("-" * 70)
            pool.deposit(250_000_000)
            pool.deposit(750_000_000)
            print(f"✓ Tree now holds {len(ledger.get_leaves())} leaves")
            print()

            # Step 3: partial withdrawal from the restored note
            print("Step 3: Withdraw 400_000_000 units to a fresh recipient")
            print("-" * 70)
            restored = decode_note(encoded, hasher)
            receipt = pool.withdraw(restored, b"\x42" * 32, amount=400_000_000)
            print(f"✓ Withdrawal confirmed: {receipt.settlement_ref}")
            print(f"  Nullifier hash: {receipt.nullifier_hash.hex()[:32]}...")
            print(f"  Change note: {receipt.change_note.amount} units")
            print()

            # Step 4: spend the change
            print("Step 4: Withdraw the change note")
            print("-" * 70)
            final = pool.withdraw(receipt.change_note, b"\x43" * 32)
            print(f"✓ Withdrew {final.amount} units; vault balance {ledger.balance()}")
            print()


if __name__ == "__main__":
    main()
