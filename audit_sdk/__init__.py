"""
audit_sdk
─────────
Stable top-level exports. Import from here, not from sub-modules directly.
Every name exported here is part of the public API and subject to semver.
"""
from audit_sdk.tier0_core.logging import configure_logging, get_logger
from audit_sdk.tier0_core.errors import (
    AuditError,
    BackendError,
    ConfigurationError,
    IndexEnsureError,
)
from audit_sdk.tier0_core.config import (
    AuditSettings,
    AuditorConfig,
    build_config,
    get_settings,
)
from audit_sdk.tier0_core.merge import merge
from audit_sdk.tier0_core.redact import CENSORED, censor

from audit_sdk.tier1_runtime.clock import Clock, get_clock, set_clock
from audit_sdk.tier1_runtime.buckets import BucketUnit, IndexNameResolver, resolve_bucket
from audit_sdk.tier1_runtime.context import Transaction, record_error, skip_log

from audit_sdk.tier2_reliability.backend import (
    ElasticsearchBackend,
    IndexBackend,
    MemoryIndexBackend,
    get_backend,
)
from audit_sdk.tier2_reliability.lifecycle import IndexLifecycleCache, IndexStatus
from audit_sdk.tier2_reliability.sink import Sink

from audit_sdk.tier3_platform.document import DocumentBuilder
from audit_sdk.tier3_platform.auditor import RequestAuditor
from audit_sdk.tier3_platform.middleware import AuditASGIMiddleware

__version__ = "0.1.0"
__all__ = [
    # logging
    "configure_logging", "get_logger",
    # errors
    "AuditError", "BackendError", "ConfigurationError",
    "IndexEnsureError",
    # config
    "AuditSettings", "AuditorConfig", "build_config", "get_settings", "merge",
    # redaction
    "CENSORED", "censor",
    # time and buckets
    "Clock", "get_clock", "set_clock",
    "BucketUnit", "IndexNameResolver", "resolve_bucket",
    # transaction context
    "Transaction", "record_error", "skip_log",
    # backend
    "IndexBackend", "MemoryIndexBackend", "ElasticsearchBackend", "get_backend",
    # lifecycle and delivery
    "IndexLifecycleCache", "IndexStatus", "Sink",
    # capture
    "DocumentBuilder", "RequestAuditor", "AuditASGIMiddleware",
]
