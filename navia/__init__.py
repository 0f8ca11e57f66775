"""
Navia Agent Core
================

Multi-agent query orchestration for Navia, an AI executive-function coach
for neurodivergent young adults.

Architecture:
- Intent Classifier: Routes a query to one or more domains
- Domain Agents: Finance, Career and Daily Task specialists
- Breakdown Generator: Turns a task into a small step-by-step plan
- Orchestrator: Fans out to the domain agents and merges their answers
"""

__version__ = "1.0.0"
__author__ = "Navia Engineering"
