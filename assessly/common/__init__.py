"""
Shared infrastructure for the Assessly backend: logging, errors, auth and storage contracts.
"""
