"""anima - stateful conversational personas over OpenAI-compatible chat APIs."""

__version__ = "0.3.0"
__logo__ = "🌸"
