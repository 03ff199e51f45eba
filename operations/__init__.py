"""CRM record operations built on the db package.

- records: single-purpose create/update/upsert/delete operations
- reconcile: name-keyed upsert reconciliation (opportunities, contact accounts)
"""
