"""Transcript Relay - Core application modules.

Provides:
- Environment-driven configuration
- SQLAlchemy models and the transcript persistence primitives
- Upload receiving and the speech recognizer client
"""

__version__ = "0.1.0"
