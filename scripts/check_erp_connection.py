#!/usr/bin/env python
"""Smoke test against a live Business Central instance.

Reads connection settings from the environment (or .env) and lists a few
records from each read-only lookup and each requested resource. Nothing is
written.

Usage:
    export BC_BASE_URL="https://bc.example.com:7048/BC/ODataV4"
    export BC_COMPANY="CRONUS"
    export BC_USERNAME="portal" BC_PASSWORD="..."
    python scripts/check_erp_connection.py
    python scripts/check_erp_connection.py --resource leave_applications --employee E001 --top 5

    # Verify imports and configuration only (no API calls):
    python scripts/check_erp_connection.py --dry-run
"""

import argparse
import asyncio
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from connectors.erp_base import create_connector, list_available_connectors
from core.config import load_erp_settings
from core.observability.logging import configure_logging
from services.registry import PortalServices


DEFAULT_RESOURCES = ["employees", "leave_types", "fixed_assets", "meeting_rooms", "fleet_vehicles"]


async def check(resources, employee_no, top) -> int:
    settings = load_erp_settings()
    print("=" * 60)
    print(f"Business Central: {settings.base_url}")
    print(f"Company:          {settings.company}")
    print("=" * 60)

    failures = 0
    async with create_connector(settings) as client:
        services = PortalServices(client)
        for name in resources:
            service = services.get(name)
            filter = service.schema.filter_model(top=top)
            if employee_no and "employee_no" in service.schema.filter_model.model_fields:
                filter = filter.model_copy(update={"employee_no": employee_no})
            result = await service.list(filter)
            if result.error is not None:
                failures += 1
                print(f"✗ {name:<24} {result.error.kind.value}: {result.error.message}")
            else:
                print(f"✓ {name:<24} {len(result)} record(s)")
    return failures


def main():
    parser = argparse.ArgumentParser(description="Check the ERP connection")
    parser.add_argument("--resource", "-r", action="append", help="Resource to list (repeatable)")
    parser.add_argument("--employee", help="Only records for this employee, where supported")
    parser.add_argument("--top", type=int, default=3, help="Rows per resource (default 3)")
    parser.add_argument("--dry-run", action="store_true", help="Check configuration without calling the ERP")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log every ERP call")
    args = parser.parse_args()

    configure_logging("DEBUG" if args.verbose else "WARNING")

    if args.dry_run:
        settings = load_erp_settings()
        print(f"✓ Settings loaded for company {settings.company}")
        print(f"✓ Connectors available: {', '.join(list_available_connectors())}")
        return

    failures = asyncio.run(check(args.resource or DEFAULT_RESOURCES, args.employee, args.top))
    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    main()
