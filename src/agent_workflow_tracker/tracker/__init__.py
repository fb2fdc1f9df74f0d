"""Local workflow tracker components.

Provides:
- Settings loaded from .env
- Structured logging
- The workflow engine and its snapshot store
- A small CLI surface
"""
