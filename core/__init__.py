"""
Core business logic - independent of the web layer.
Used by the web API and the course import script.
"""

# Database (SQLAlchemy)
from .database import get_connection, get_transaction, get_engine, close_engine, is_configured

# Configuration
from .config import check_required_env_vars, is_dev_mode, is_production

__all__ = [
    # Database (SQLAlchemy)
    'get_connection', 'get_transaction', 'get_engine', 'close_engine', 'is_configured',
    # Configuration
    'check_required_env_vars', 'is_dev_mode', 'is_production',
]
