"""promptx — turn messy developer prompts into structured LLM prompts."""

__version__ = "1.1.0"
