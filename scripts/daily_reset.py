"""Script to reset every doctor's serving counter at the start of a day.

Intended for a midnight cron job; ticket numbering already restarts at local
midnight, this keeps the cached serving numbers in step.
"""

import sys

from app.core.exceptions import DownstreamUnavailableException
from app.core.redis_client import CounterStore, close_redis_connection, get_redis_client

COUNTER_PATTERN = "doctor:*:current"


def reset_counters() -> int:
    """Reset all serving counters to 0 and return how many were reset."""
    store = CounterStore(get_redis_client())
    try:
        return store.reset_pattern(COUNTER_PATTERN)
    finally:
        close_redis_connection()


if __name__ == "__main__":
    try:
        print("Resetting serving counters...")
        count = reset_counters()
        print(f"✓ Reset {count} counter(s)")
    except DownstreamUnavailableException as e:
        print(f"✗ Counter reset failed: {e.message}", file=sys.stderr)
        sys.exit(1)
