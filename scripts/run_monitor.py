#!/usr/bin/env python3
"""Entry point for the CryptoPulse monitor console (thin wrapper).

Usage::

    python scripts/run_monitor.py --query btcusdt --intervals 15m 1h --cycle 30s
"""

import sys


def main() -> int:
    from cryptopulse.app import main as app_main

    return app_main()


if __name__ == "__main__":
    sys.exit(main())
