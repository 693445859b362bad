# api/__init__.py
"""
Front Desk Visitor Log - HTTP API

FastAPI application (api.main:app) and its routers.
"""
