"""
Pinboard Backend
================

A REST API for sharing places ("positions") on a map. Users sign up with
an avatar, log in for a bearer token, and create, edit and delete the
positions they own; anyone may browse.

Layers:
    routes/    HTTP concerns: parsing, status codes, response shapes
    services/  Business rules, transactions, external calls
    models/    SQLAlchemy ORM tables
    schemas/   Pydantic request/response contracts
"""

__version__ = "1.0.0"
