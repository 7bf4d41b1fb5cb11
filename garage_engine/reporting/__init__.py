"""Reporting helpers built on pandas."""

from garage_engine.reporting.ledger_report import account_summary, ledger_frame

__all__ = ["account_summary", "ledger_frame"]
