# tests/unit/__init__.py
"""
Unit tests for SOW approvals.

Engine, checker and reporter run against the in-memory Supabase mock from
conftest; nothing here reaches a network.
"""
