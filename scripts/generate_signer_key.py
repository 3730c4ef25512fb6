#!/usr/bin/env python3
"""
Generate an Ed25519 claim signing key.

Example:
    python scripts/generate_signer_key.py --out keys/signer.pem

Point SIGNING__PRIVATE_KEY_PATH at the written file and publish the printed
public key as SIGNING__AUTHORIZED_SIGNER on every verifying instance.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from claimledger.core.crypto import Ed25519KeyManager


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a claim signing key")
    parser.add_argument("--out", type=Path, required=True, help="PEM file to write")
    parser.add_argument("--force", action="store_true", help="overwrite an existing key file")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    if args.out.exists() and not args.force:
        raise SystemExit(f"{args.out} already exists; pass --force to replace it")

    manager = Ed25519KeyManager.generate()
    manager.save(args.out)
    print(f"[key] written: {args.out}")
    print(f"[key] public key: {manager.public_key_hex}")


if __name__ == "__main__":
    main()
