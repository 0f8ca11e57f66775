"""
Agents Module
=============

Intent classification, task breakdowns and the domain specialists.

ARCHITECTURE:
                    ┌──────────────┐
                    │ User Query   │
                    └──────┬───────┘
                           │
                  ┌────────▼─────────┐
                  │ Intent Classifier│ ◄─── One or more domains
                  └────────┬─────────┘
                           │
           ┌───────────────┼───────────────┐
           │               │               │
    ┌──────▼──────┐ ┌──────▼──────┐ ┌──────▼──────┐
    │   Finance   │ │   Career    │ │ Daily Task  │
    │    Agent    │ │    Agent    │ │    Agent    │
    └──────┬──────┘ └──────┬──────┘ └──────┬──────┘
           │               │               │
           └───────────────┼───────────────┘
                           │   (each may call the Breakdown Generator)
                    ┌──────▼───────┐
                    │ Orchestrator │ ◄─── Merges into one result
                    └──────────────┘
"""

from navia.agents.base_agent import BaseAgent, TextCompletionService
from navia.agents.breakdown import BreakdownGenerator
from navia.agents.career_agent import CareerAgent
from navia.agents.daily_task_agent import DailyTaskAgent
from navia.agents.domain_agent import DomainAgent
from navia.agents.finance_agent import FinanceAgent
from navia.agents.intent_classifier import Classifier, LLMIntentClassifier, ScriptedClassifier

__all__ = [
    "BaseAgent",
    "TextCompletionService",
    "BreakdownGenerator",
    "DomainAgent",
    "FinanceAgent",
    "CareerAgent",
    "DailyTaskAgent",
    "Classifier",
    "LLMIntentClassifier",
    "ScriptedClassifier",
]
