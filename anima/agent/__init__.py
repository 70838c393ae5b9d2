"""Conversational agents and the registry that owns them."""

from anima.agent.agent import ConversationalAgent
from anima.agent.context import ContextBuilder
from anima.agent.registry import AgentRegistry

__all__ = ["AgentRegistry", "ContextBuilder", "ConversationalAgent"]
