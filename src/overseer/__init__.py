"""
Overseer - Supervision layer for AI chat pipelines.

Overseer sits between a chat session and its model provider. It provides:
- A chain of supervisors that allow, modify or block requests and responses
- Guardian content policy with redaction
- A tool permission gate for autonomous and interactive sessions
- Request context assembly for observability

Example usage:
    $ overseer check "call me at 555-123-4567" --rule "no personal info"
    $ overseer supervise "hello" --config supervisors.yaml
    $ overseer tools servers.yaml --autonomous
"""

__version__ = "0.1.0"
__author__ = "Overseer Contributors"

__all__ = [
    "__version__",
    "__author__",
]
