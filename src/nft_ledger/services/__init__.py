"""Ledger services: confirmation state machine, ingestion gateway, query engine.

Import from the subpackages (services.confirmation, services.ingestion,
services.query); the repositories depend on services.confirmation, so this
package does not re-export them.
"""
