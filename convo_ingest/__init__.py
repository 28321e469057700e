"""convo-ingest: turn loosely structured conversation-log spreadsheets into Conversation records."""

import logging

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
