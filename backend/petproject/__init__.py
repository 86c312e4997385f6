"""
PetProject Backend - Application Package Initializer
======================================================

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← rules, batches, validation
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← pydantic documents + API shapes
    ├─────────────────────────────────────┤
    │      Document Store (Persistence)   │  ← memory or Cloud Firestore
    └─────────────────────────────────────┘

    Routes delegate to services; services only talk to the abstract
    DocumentStore, so they run unchanged on either backend.
"""

__version__ = "1.0.0"
