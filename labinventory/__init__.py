"""Lab component inventory: catalog, borrowing ledger and procurement advisory."""
