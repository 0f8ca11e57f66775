"""
Memory Module
=============

Stored conversation history and the prompt rendering of it.
"""

from navia.memory.conversation_store import ConversationStore, InMemoryConversationStore

__all__ = ["ConversationStore", "InMemoryConversationStore"]
