"""
Services Module
===============

The orchestrator and the container that wires it to its collaborators.
"""

from navia.services.container import NaviaServices, build_services
from navia.services.orchestrator import AgentOrchestrator

__all__ = ["AgentOrchestrator", "NaviaServices", "build_services"]
