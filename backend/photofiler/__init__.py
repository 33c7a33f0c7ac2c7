"""
PhotoFiler Backend: Application Package
=========================================

Layers:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  SaveOrchestrator + Strategies      │  ← save flow, fallback chain
    ├─────────────────────────────────────┤
    │  Platform seams                     │  ← media library, documents,
    │                                     │    permissions, interaction
    ├─────────────────────────────────────┤
    │  DirectoryHandleStore (SQLAlchemy)  │  ← persisted root folder
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
