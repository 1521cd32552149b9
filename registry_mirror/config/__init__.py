"""
Configuration — config.yml endpoints and environment settings.
"""
