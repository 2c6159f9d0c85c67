"""Recipe shop commerce load testing — Locust entry point.

Discovers all user classes from the scenarios package. The target service
must run with the fake payment provider so transactions can be paid from
the load test, and LOADTEST_PRODUCT_IDS must name products that exist.

Usage:
    # All scenarios (web UI):
    LOADTEST_PRODUCT_IDS=prod-1,prod-2 locust -f loadtests/locustfile.py

    # Webhook redelivery storm only:
    locust -f loadtests/locustfile.py WebhookRedeliveryUser

    # Headless (CI mode):
    locust -f loadtests/locustfile.py CheckoutUser --headless \
           -u 50 -r 5 -t 300s --csv=results/loadtest
"""

import logging
import time

from locust import events

# Import all user classes so Locust discovers them
from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.checkout import CheckoutUser, WebhookRedeliveryUser  # noqa: F401
from loadtests.scenarios.storefront import StorefrontUser  # noqa: F401

logger = logging.getLogger("loadtest")


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    """Log error details for every failed request.

    Extracts the API error body so you see "Only 0 item(s) of product ... are available"
    instead of just "400".
    """
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
    elif response is not None and response.status_code >= 400:
        detail = extract_error_detail(response)
        logger.error("[%s] %s %s: %s", response.status_code, request_type, name, detail)


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    """Log a marker when load test begins."""
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')}")
    print(f"[LOADTEST] Target host: {environment.host}")
    print()


@events.test_stop.add_listener
def on_test_stop(**_kwargs):
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}\n")
