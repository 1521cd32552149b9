"""
Registry Mirror — Periodically mirror every repository of one container
registry into another with skopeo sync.
"""

__version__ = "0.1.0"
