from .localtime import (
    local_now,
    parse_date,
    parse_time,
    normalize_time,
    day_of_week,
)

__all__ = [
    # Decorators
    "require_role",
    "get_current_identity",
    "get_current_user",
    # Audit
    "log_audit",
    "log_booking_action",
    # Local time
    "local_now",
    "parse_date",
    "parse_time",
    "normalize_time",
    "day_of_week",
]


# decorators and audit import vetcare.models, which itself imports
# vetcare.utils.localtime; resolve them lazily to avoid a circular import.
_LAZY = {
    "require_role": "decorators",
    "get_current_identity": "decorators",
    "get_current_user": "decorators",
    "log_audit": "audit",
    "log_booking_action": "audit",
}


def __getattr__(name):
    if name in _LAZY:
        import importlib
        module = importlib.import_module(f".{_LAZY[name]}", __name__)
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
