"""ChatBridge: tool-calling chat service bridging LLM providers, MCP hosts and widgets."""

__version__ = "0.1.0"
