"""Back-office business modules.  Currently: banking (bank reconciliation)."""
