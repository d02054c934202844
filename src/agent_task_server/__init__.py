"""Clone, develop, test, commit and push repositories with a coding agent."""

__version__ = "1.1.0"
