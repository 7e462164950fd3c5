# src/sow_approvals/api/__init__.py
"""HTTP layer: routers, request models and the response envelope."""
