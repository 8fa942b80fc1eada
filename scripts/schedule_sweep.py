#!/usr/bin/env python3
"""
Register the lead expiry sweep, or run it once.

The sweep is a periodic rq-scheduler job under a fixed id. Running this script
again (every deploy, say) replaces the existing registration instead of adding
a second schedule.

Usage:
    python scripts/schedule_sweep.py                  # first run now, then every EXPIRY_SWEEP_INTERVAL_SECONDS
    python scripts/schedule_sweep.py --delay 600      # first run in 10 minutes
    python scripts/schedule_sweep.py --interval 900   # override the interval
    python scripts/schedule_sweep.py --now            # run one sweep synchronously, nothing registered

Requires: Redis running (except with --now), DATABASE_URL set (or defaults to sqlite:///local.db).
Run `rqscheduler` and `rq worker` alongside the app.
"""
import sys
import os
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from leadmatch.logging_config import configure_logging
from leadmatch.services.expiry import run_expiry_sweep, schedule_expiry_sweep


def main():
    parser = argparse.ArgumentParser(description='Register or run the lead expiry sweep')
    parser.add_argument('--now', action='store_true', help='Run one sweep inline instead of registering')
    parser.add_argument('--delay', type=int, default=0, help='Seconds before the first scheduled run')
    parser.add_argument('--interval', type=int, default=None, help='Seconds between runs')
    args = parser.parse_args()

    configure_logging()

    if args.now:
        result = run_expiry_sweep()
        if result is None:
            print('Sweep failed, see log output.')
            sys.exit(1)
        print(f'Expired {result.expired} leads at {result.ran_at}')
        return

    job = schedule_expiry_sweep(delay_seconds=args.delay, interval_seconds=args.interval)
    if job is None:
        print('Could not reach Redis, sweep not registered.')
        sys.exit(1)
    print(f'Expiry sweep registered (job {job.id}).')


if __name__ == '__main__':
    main()
