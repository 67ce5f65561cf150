"""mars-agent: chat with a model that can browse Mars rover photos through a tool provider."""

__version__ = "1.0.0"
