"""Shared test domain: a bank account aggregate and its summary view."""

from .bank_account import ACCOUNT_TYPE, AccountSummary, account_event, opened_event

__all__ = ["ACCOUNT_TYPE", "AccountSummary", "account_event", "opened_event"]
