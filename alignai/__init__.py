"""AlignAI: align a product team's answers section by section, then export a PRD."""

__version__ = "0.1.0"
