"""
SnackCart Backend — Package Initializer
=======================================

What: Theatre snack counter inventory: a REST API over a single snack
      collection plus the client-side catalog view-model that drives the
      admin grid.
Who:  Imported by uvicorn (`snackcart.main:app`), Alembic, pytest and any
      client that embeds `snackcart.client`.

Layers:

    ┌─────────────────────────────────────┐
    │   Client (view-model + transport)   │  ← snackcart.client
    ├─────────────────────────────────────┤
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← validation, merge rules
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
