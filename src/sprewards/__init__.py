"""SP rewards ledger and referral royalty service."""
