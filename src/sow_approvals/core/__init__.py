# src/sow_approvals/core/__init__.py
"""Application wiring."""

from .container import Container

__all__ = ["Container"]
