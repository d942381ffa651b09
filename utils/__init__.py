"""
Utility modules for the ETL Fixer backend
"""

from .json_serializer import serialize_for_json, prepare_result_for_storage

__all__ = [
    'serialize_for_json',
    'prepare_result_for_storage'
]
