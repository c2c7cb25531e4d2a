"""Tenancy infrastructure: resolvers, isolation predicates and query auditing."""
