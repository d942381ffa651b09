"""Models"""
from .users import Profile
from .error_history import ErrorHistory

__all__ = [
    'Profile',
    'ErrorHistory'
]
