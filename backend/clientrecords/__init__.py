"""
Client Records Backend — Application Package
==============================================

Client profiles for an events organization: CRUD and search over client
records, event-attendance lookups, and one profile photo per client.

Layers:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, status codes
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← org scoping, delete guard, photos
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
