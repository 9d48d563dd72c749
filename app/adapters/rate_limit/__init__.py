"""Request rate limiting adapters.

Per-user, per-action budgets for API calls. Separate from send quota
accounting, which is persisted and lives in ``app.services.send_limiter``.
"""
