"""Tenancy bounded context.

Resolves the tenant that owns each unit of work and enforces row-level
isolation on tenant-owned tables.
"""
