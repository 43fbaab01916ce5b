"""
Assessment services: the attempt engine, evaluation, reports and catalogue
management, plus the HTTP controllers exposing them.
"""
