"""Library loan engine.

Keeps the book inventory and the loan ledger consistent:
- SQLAlchemy models for books, loans, borrowers and favorites
- Async repositories composed into single-transaction operations
- Pure-function business rules
- Explicit loan lifecycle (Borrowed -> Returned)
- Read-only reporting and dashboard views
- FastAPI router translating typed errors into responses
"""
