"""Navigation Engine - authorization and workflow gates"""
from .authorization_gate import AuthorizationGate
from .workflow_gate import WorkflowStatusGate
from .navigation import NavigationGuard, RouteDefinition

__all__ = [
    "AuthorizationGate",
    "WorkflowStatusGate",
    "NavigationGuard",
    "RouteDefinition",
]
