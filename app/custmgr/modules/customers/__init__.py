"""
Customers module (JSON API).

Scope:
- Customers CRUD with filtered, sorted, paginated listing
- Addresses per customer with a maintained primary address
- Transactions are read-only and block customer deletion
"""
