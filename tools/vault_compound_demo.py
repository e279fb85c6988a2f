#!/usr/bin/env python3

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.venues.local import build_local_deployment


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Run the offline compounding-vault scenario.")
    ap.add_argument("--first-deposit", type=int, default=1000)
    ap.add_argument("--second-deposit", type=int, default=500)
    ap.add_argument("--reward", type=int, default=150)
    ap.add_argument("--slippage-bps", type=int, default=500)
    ap.add_argument("-v", "--verbose", action="store_true", help="log reinvest phases and venue calls")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(name)s: %(message)s")

    dep = build_local_deployment(overrides={"slippage_bps": args.slippage_bps})
    vault = dep.vault
    owner = dep.config.owner

    dep.fund_asset("alice", args.first_deposit)
    dep.fund_asset("bob", args.second_deposit)

    alice_shares = vault.deposit(args.first_deposit, "alice", caller="alice")
    print(f"[vault-demo] alice deposited {args.first_deposit} -> {alice_shares} shares")
    bob_shares = vault.deposit(args.second_deposit, "bob", caller="bob")
    print(f"[vault-demo] bob deposited {args.second_deposit} -> {bob_shares} shares")
    print(f"[vault-demo] total_assets={vault.total_assets()} total_supply={vault.total_supply()}")

    dep.accrue_reward(args.reward)
    print(f"[vault-demo] pending reward: {dep.engine.pending_reward_amount()}")

    try:
        receipt = dep.engine.reinvest(caller=owner)
    except Exception as exc:
        print(f"[vault-demo] FAIL (reinvest): {exc}")
        return 1
    print(
        f"[vault-demo] reinvest: reward={receipt.reward} amount0={receipt.amount0} amount1={receipt.amount1} "
        f"liquidity={receipt.liquidity} total_deposits={receipt.total_deposits}"
    )
    print(f"[vault-demo] total_assets={vault.total_assets()} total_supply={vault.total_supply()}")

    assets = vault.redeem(bob_shares, "bob", "bob", caller="bob")
    print(f"[vault-demo] bob redeemed {bob_shares} shares -> {assets} assets")
    if assets <= args.second_deposit:
        print("[vault-demo] FAIL: redemption did not include compounded reward")
        return 1
    print("[vault-demo] OK: reward compounded into share price")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
