"""Freight System package.

Feature modules (users, manifests, rates, packages, consolidation, audit,
backups) sit behind a thin Flask controller layer, with service and
repository layers underneath.
"""
