"""Personal task board: session auth plus owner-scoped todos."""

# register every mapped table on Base.metadata
from . import auth_sessions, models  # noqa: F401

__version__ = "0.1.0"
