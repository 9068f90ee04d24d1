from gatekeeper.db import Database, ExecutionFailed
from gatekeeper.gateway import create_app, strip_semicolons
from gatekeeper.tokens import RejectReason, RowMode, TokenVerifier, Verdict

__all__ = [
    "Database",
    "ExecutionFailed",
    "RejectReason",
    "RowMode",
    "TokenVerifier",
    "Verdict",
    "create_app",
    "strip_semicolons",
]
