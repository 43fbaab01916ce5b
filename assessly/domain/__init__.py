"""
Domain entities and repository interfaces for the assessment engine.
"""
