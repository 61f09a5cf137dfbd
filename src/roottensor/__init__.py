"""RootTensor: chat client for a local Ollama server."""

__version__ = "0.1.0"
