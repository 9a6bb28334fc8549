#!/usr/bin/env python3
"""Live order watcher for a delivery driver account.

Logs in (or restores a saved session), goes online and prints every
order snapshot the coordinator publishes until interrupted.

Environment:
- COURIER_PHONE_NUMBER: 10-digit phone number used when no session is saved
- COURIER_CREDENTIALS_FILE: JSON credential file (default: .courier-credentials.json)
- COURIER_BASE_URL and the other COURIER_* settings read by CourierConfig.from_env
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pycourier import (  # noqa: E402
    CourierClient,
    CourierConfig,
    CourierError,
    JsonFileCredentialStore,
    OrdersSnapshot,
)


def _print_snapshot(snapshot: OrdersSnapshot) -> None:
    print(f"--- refresh #{snapshot.sequence} ---")
    for order in snapshot.ongoing:
        pending = " (updating)" if order.id in snapshot.pending_transitions else ""
        print(f"  ongoing  #{order.order_number:<6} {order.delivery_status:<20} {order.customer_name}{pending}")
    for order in snapshot.history:
        print(f"  history  #{order.order_number:<6} {order.delivery_status:<20} {order.customer_name}")
    for order_id in snapshot.incoming:
        print(f"  incoming {order_id}")
    if snapshot.just_accepted_id:
        print(f"  just accepted: {snapshot.just_accepted_id}")


async def _run(args: argparse.Namespace) -> int:
    config = CourierConfig.from_env()
    store = JsonFileCredentialStore(args.credentials)

    async with CourierClient(config, store=store) as client:
        session = await client.restore()
        if session is None:
            if not args.phone:
                print("No saved session; set COURIER_PHONE_NUMBER or pass --phone", file=sys.stderr)
                return 2
            result = await client.login(args.phone)
            print(f"Logged in as driver {result.id} (new user: {result.is_new_user})")
        else:
            print(f"Restored session for driver {session.driver_id}")

        client.coordinator.subscribe(_print_snapshot)
        await client.refresh_orders()

        if args.once:
            return 0
        try:
            while True:
                await asyncio.sleep(args.interval)
                print(f"online={client.is_online}")
        except asyncio.CancelledError:
            pass
        if args.logout:
            await client.logout()
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--phone", default=os.environ.get("COURIER_PHONE_NUMBER"))
    parser.add_argument(
        "--credentials",
        type=Path,
        default=Path(os.environ.get("COURIER_CREDENTIALS_FILE", ".courier-credentials.json")),
    )
    parser.add_argument("--interval", type=float, default=30.0, help="Seconds between status lines")
    parser.add_argument("--once", action="store_true", help="Print one snapshot and exit")
    parser.add_argument("--logout", action="store_true", help="Log out when interrupted")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 130
    except CourierError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
