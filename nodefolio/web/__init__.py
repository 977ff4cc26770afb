"""
Web module - FastAPI host for a portfolio session.
"""
