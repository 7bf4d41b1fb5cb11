"""Tabular views over recorded race transactions."""

from __future__ import annotations

import pandas as pd

from garage_engine.economy.store import Store

LEDGER_COLUMNS: list[str] = [
    "race_id",
    "account",
    "kind",
    "amount",
    "counterparty",
    "track",
    "description",
]


def ledger_frame(store: Store, account: str | None = None) -> pd.DataFrame:
    """All transactions (optionally for one account) as a DataFrame."""
    rows = [
        {
            "race_id": m.race_id,
            "account": m.account,
            "kind": m.kind.value,
            "amount": m.amount,
            "counterparty": m.counterparty,
            "track": m.track.value if m.track else None,
            "description": m.description,
        }
        for m in store.list_transactions(account)
    ]
    return pd.DataFrame(rows, columns=LEDGER_COLUMNS)


def account_summary(store: Store) -> pd.DataFrame:
    """Per-account totals.

    Returns:
        DataFrame indexed by account with columns ``wagered`` (sum of
        debits, positive), ``paid_out`` (sum of credits), ``net`` and
        ``races`` (distinct race ids).
    """
    df = ledger_frame(store)
    if df.empty:
        return pd.DataFrame(columns=["wagered", "paid_out", "net", "races"]).rename_axis("account")

    grouped = df.groupby("account")
    summary = pd.DataFrame(
        {
            "wagered": grouped["amount"].apply(lambda s: int(-s[s < 0].sum())),
            "paid_out": grouped["amount"].apply(lambda s: int(s[s > 0].sum())),
            "net": grouped["amount"].sum().astype(int),
            "races": grouped["race_id"].nunique(),
        }
    )
    return summary.sort_values("net", ascending=False)
