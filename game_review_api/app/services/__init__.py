"""
Business logic, one service class per domain.

Mutations that touch more than one table run inside an atomic unit
from ``core.db`` so that either all of their writes become visible or
none.
"""
