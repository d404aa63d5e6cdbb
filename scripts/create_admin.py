#!/usr/bin/env python3
"""
Bootstrap the first admin account.

Admin signup over HTTP requires an existing admin, so the first one is
provisioned directly against the database:

    ADMIN_PASSWORD=... poetry run python scripts/create_admin.py admin@example.com --name "Ops Admin"
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from onboarding.core.logging import setup_logging
from onboarding.domain.errors import OnboardingError
from onboarding.domain.services import IdentityProvisioner
from onboarding.infrastructure.db import dispose_engine, get_session_factory
from onboarding.infrastructure.employee_ids import SequenceEmployeeIdGenerator
from onboarding.infrastructure.identity import LocalIdentityStore


async def create_admin(email: str, password: str, full_name: str | None) -> int:
    session_factory = get_session_factory()
    try:
        async with session_factory() as session:
            provisioner = IdentityProvisioner(
                session, LocalIdentityStore(session), SequenceEmployeeIdGenerator(session)
            )
            try:
                provisioned = await provisioner.provision(
                    email,
                    password,
                    "admin",
                    {"full_name": full_name} if full_name else None,
                    allowed_roles=("admin",),
                )
            except OnboardingError as exc:
                print(f"ERROR ({exc.kind}): {exc.message}")
                return 1
    finally:
        await dispose_engine()

    print(f"Admin created: {provisioned.account.email} ({provisioned.account.id})")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("email")
    parser.add_argument("--name", dest="full_name", default=None)
    args = parser.parse_args()

    password = os.getenv("ADMIN_PASSWORD")
    if not password or len(password) < 8:
        print("ERROR: ADMIN_PASSWORD must be set to at least 8 characters")
        sys.exit(1)

    setup_logging()
    sys.exit(asyncio.run(create_admin(args.email, password, args.full_name)))


if __name__ == "__main__":
    main()
