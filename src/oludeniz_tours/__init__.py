"""Oludeniz Tours booking, customer ledger and invoicing service."""
