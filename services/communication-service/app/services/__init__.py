"""
Message validation and dispatch services
"""

from .gateway import DispatchGateway
from .route_table import RouteTable
from .schema_registry import SchemaRegistry
from .validation import ValidationEngine

__all__ = ["DispatchGateway", "RouteTable", "SchemaRegistry", "ValidationEngine"]
