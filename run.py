#!/usr/bin/env python3
"""
Secure ATM Entry Point

Provisions the demo accounts and starts the text console.
"""

import sys

from secure_atm.config import get_config
from secure_atm.console import run_console
from secure_atm.logging_config import setup_logging
from secure_atm.terminal import TerminalState

DEMO_ACCOUNTS = [
    ("Alice Johnson", "1001", "1234", "5000.00"),
    ("Bob Smith", "1002", "5678", "3000.00"),
    ("Carol White", "1003", "9012", "10000.00"),
]


def main() -> int:
    config = get_config()
    setup_logging(config.log_level, config.log_format)

    with TerminalState(config) as state:
        for name, account_number, pin, balance in DEMO_ACCOUNTS:
            state.provision_account(name, account_number, pin, balance)
        return run_console(state)


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        print(f"Error starting terminal: {e}")
        sys.exit(1)
