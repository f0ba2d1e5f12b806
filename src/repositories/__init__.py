"""Persistence layer.

:mod:`repositories.store` defines the record store contract and
:mod:`repositories.sqlite` its SQLite adapter. The table gateway, the SQL
builder and the group visibility resolver sit on top of any store.
"""
