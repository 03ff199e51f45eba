"""Repository layer for the CRM record store.

Provides query helpers for core CRM entities:
- accounts: get_by_id, get_by_name, get_by_names, find_or_create
- contacts: get_by_ids, get_by_account
- opportunities: get_by_names, get_by_account
- leads: get_by_last_names
- cases: get_by_account
"""
