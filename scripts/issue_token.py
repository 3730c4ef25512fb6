#!/usr/bin/env python3
"""
Mint a bearer token for an API principal.

Example:
    python scripts/issue_token.py --subject reward-service --role issuer
"""

from __future__ import annotations

import argparse
from datetime import timedelta

from claimledger.core.config import get_settings
from claimledger.core.security import ROLE_RANK, create_access_token


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Issue an access token")
    parser.add_argument("--subject", required=True, help="principal identity (wallet address, service name)")
    parser.add_argument("--role", choices=sorted(ROLE_RANK), default="subject")
    parser.add_argument("--minutes", type=int, default=None, help="lifetime; defaults to the configured expiry")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    expires = timedelta(minutes=args.minutes) if args.minutes else None
    print(create_access_token(args.subject, args.role, get_settings(), expires))


if __name__ == "__main__":
    main()
