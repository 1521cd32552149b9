"""
Mirror — Catalog discovery, skopeo invocation and the poll loop.

This module provides the insecure-registries declaration, the shared
skopeo argument list, the catalog query and the sync driver.
"""
