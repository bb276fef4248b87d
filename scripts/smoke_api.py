#!/usr/bin/env python3
"""
Smoke test of a running Maria Vita API.

Logs in as each demo user (see ``manage.py ensure_demo_users``), reads the
endpoints that role should reach and reports the failures.

    python scripts/smoke_api.py --base-url http://127.0.0.1:8000
"""
import argparse
import logging
import sys
import time
from dataclasses import dataclass

import requests

from clinic.client import MemoryStorage, PortalAPIError, PortalClient, SessionContext

logger = logging.getLogger("smoke_api")

DEMO_PASSWORD = "Demo123!"

DEMO_USERS = {
    "superadmin": "superadmin@mariavita.test",
    "admin": "admin@mariavita.test",
    "specialist": "especialista@mariavita.test",
    "receptionist": "recepcion@mariavita.test",
    "patient": "paciente@mariavita.test",
}

COMMON = ["/api/auth/me", "/api/dashboard/modules", "/api/specialists", "/api/specialties",
          "/api/study-catalog", "/api/appointments", "/api/study-requests"]

EXTRA = {
    "superadmin": ["/api/users", "/api/dashboard/overview"],
    "admin": ["/api/users", "/api/dashboard/overview"],
    "specialist": [],
    "receptionist": [],
    "patient": [],
}


@dataclass
class CheckResult:
    success: bool
    role: str
    endpoint: str
    elapsed: float
    error: str = ""


def check_role(base_url, role, password):
    client = PortalClient(base_url, SessionContext(MemoryStorage()))
    results = []
    try:
        client.login(DEMO_USERS[role], password)
    except (PortalAPIError, requests.RequestException) as e:
        return [CheckResult(False, role, "/api/auth/login", 0, str(e))]

    for endpoint in COMMON + EXTRA[role]:
        start = time.time()
        try:
            client.get(endpoint)
        except (PortalAPIError, requests.RequestException) as e:
            results.append(CheckResult(False, role, endpoint, time.time() - start, str(e)))
        else:
            results.append(CheckResult(True, role, endpoint, time.time() - start))

    try:
        client.logout()
    except PortalAPIError as e:
        results.append(CheckResult(False, role, "/api/auth/logout", 0, str(e)))
    return results


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--base-url", default="http://127.0.0.1:8000")
    parser.add_argument("--password", default=DEMO_PASSWORD)
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    results = []
    for role in DEMO_USERS:
        results.extend(check_role(args.base_url, role, args.password))

    failures = [r for r in results if not r.success]
    for r in failures:
        logger.error("FAIL %-12s %-28s %s", r.role, r.endpoint, r.error)
    logger.info("%d checks, %d failed", len(results), len(failures))
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
