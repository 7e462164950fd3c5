# src/sow_approvals/__init__.py
"""
SOW Approvals - multi-stage approval workflow service for Statement of Work documents.

Packages:
- workflow: engine, status derivation, consistency checker, reporting
- repositories: Supabase-backed stores (SOWs, stages, approvals, audit log)
- infrastructure: Supabase client factory, Slack notifier, document locks
- api: FastAPI routers
"""

__version__ = "0.1.0"
