"""
Text console for the terminal

Authenticates, then runs one menu operation per iteration until logout or
session expiry. All rules live in the core; this module only prompts and
reports.
"""

import getpass
from typing import Callable

from .currency import format_amount
from .errors import ATMError, AccountLocked, AuthenticationFailed, SessionTimeout
from .terminal import TerminalState

MENU = """
1. Balance inquiry
2. Withdraw
3. Transfer
4. Mini statement
5. Logout"""


def _login(state: TerminalState, input_fn: Callable, output_fn: Callable,
           pin_fn: Callable) -> bool:
    for _ in range(state.config.max_pin_attempts):
        account_number = input_fn("Account number: ").strip()
        pin = pin_fn("PIN: ")
        try:
            state.login(account_number, pin)
        except AccountLocked as e:
            output_fn(f"Account locked: {e.message}")
            return False
        except AuthenticationFailed as e:
            if e.attempts_remaining is not None:
                output_fn(f"Invalid credentials. {e.attempts_remaining} attempt(s) remaining.")
            else:
                output_fn("Invalid credentials.")
            continue
        except ATMError as e:
            output_fn(f"Error: {e.message}")
            continue
        return True
    output_fn("Too many failed attempts.")
    return False


def _run_operation(state: TerminalState, choice: str, input_fn: Callable,
                   output_fn: Callable) -> bool:
    """Execute one menu choice. Returns False when the user logs out."""
    authorizer = state.authorizer
    currency = state.config.currency

    if choice == "1":
        output_fn(f"Balance: {format_amount(authorizer.balance_inquiry(), currency)}")
    elif choice == "2":
        amount = input_fn("Amount to withdraw: ").strip()
        result = authorizer.withdraw(amount)
        output_fn(f"Withdrawal successful. New balance: {format_amount(result.balance, currency)}")
    elif choice == "3":
        target = input_fn("Target account number: ").strip()
        amount = input_fn("Amount to transfer: ").strip()
        result = authorizer.transfer(target, amount)
        output_fn(f"Transfer successful. New balance: {format_amount(result.balance, currency)}")
    elif choice == "4":
        for transaction in authorizer.mini_statement():
            output_fn(
                f"{transaction.timestamp:%Y-%m-%d %H:%M:%S}  "
                f"{transaction.transaction_type.value:<10}  "
                f"{format_amount(transaction.amount, currency):>16}  {transaction.details}"
            )
    elif choice == "5":
        return False
    else:
        output_fn("Invalid choice.")
    return True


def run_console(state: TerminalState, input_fn: Callable = input,
                output_fn: Callable = print, pin_fn: Callable = getpass.getpass) -> int:
    """
    Run the interactive terminal loop

    Returns:
        Process exit code: 0 after a normal logout or expiry, 1 when
        authentication did not succeed
    """
    output_fn("Welcome to SecureATM")
    try:
        if not _login(state, input_fn, output_fn, pin_fn):
            return 1

        while True:
            if not state.sessions.is_valid():
                output_fn("Session expired. Please start a new session.")
                break

            output_fn(MENU)
            choice = input_fn("Select option: ").strip()
            try:
                if not _run_operation(state, choice, input_fn, output_fn):
                    output_fn("Goodbye.")
                    break
            except SessionTimeout as e:
                output_fn(e.message)
                break
            except ATMError as e:
                output_fn(f"Error ({e.kind}): {e.message}")
    except (EOFError, KeyboardInterrupt):
        output_fn("")
    finally:
        state.logout()

    return 0
