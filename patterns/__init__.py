"""Reusable building blocks for the library service.

Each module is domain-neutral: pure-function rule evaluation, enum state
machines and a generic async repository over SQLAlchemy models.
"""
