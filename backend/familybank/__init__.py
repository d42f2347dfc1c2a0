"""Family bank: per-child balances with recurring allowance and interest."""
