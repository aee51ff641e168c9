"""
InvestBridge — Platform Decision Engine.

Architecture:
    investbridge/
    ├── api/             # FastAPI routers (HTTP layer)
    ├── db/              # SQLAlchemy engine and row models for the store adapter
    ├── store/           # Document store protocol + SQL-backed adapter
    ├── identity/        # Identity provider (JWT verification, role claims)
    ├── push/            # Push-delivery transports (best effort)
    ├── middleware/      # Request context, error handling
    ├── roles/           # Role registry (FSM), transition authority, access guard
    ├── events/          # Domain event variants, audience rules, fan-out pipeline
    ├── scoring/         # Risk score + portfolio metrics (pure functions)
    └── services/        # Audit log, assessments, portfolios, analytics, retention

Module Boundaries:
    - The stored user record is the authoritative role; the claim is a cache
    - Every state-changing operation appends one audit entry, written last
    - Fan-out is at-least-once and best effort; push failures never propagate
    - Scoring functions are pure; callers persist results

Data Flow:
    Store trigger → Parse event → Audience → Batched notifications → Push → Audit
    Caller → Access guard → Role authority / Scoring → Store → Audit

Version: 1.0.0
"""

__version__ = "1.0.0"
