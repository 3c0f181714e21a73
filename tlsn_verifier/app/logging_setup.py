"""
Structured JSON-like logging setup (simple).
Redacts sensitive fields such as private keys and the API key before logging.
"""

import logging
import json

from .config import LOG_LEVEL

class RedactingFormatter(logging.Formatter):
    SENSITIVE_KEYS = {"key", "private_key", "signing_key", "api_key", "x-api-key"}

    def redact(self, msg: dict) -> dict:
        return {k: "<redacted>" if k in self.SENSITIVE_KEYS else v for k, v in msg.items()}

    def format(self, record):
        if not isinstance(record.msg, dict):
            return super().format(record)
        # format a copy; other handlers receive the same record
        redacted = logging.makeLogRecord(record.__dict__)
        redacted.msg = json.dumps(self.redact(record.msg), default=str)
        redacted.args = None
        return super().format(redacted)

def setup_logging(level: str = LOG_LEVEL):
    handler = logging.StreamHandler()
    fmt = '%(asctime)s %(levelname)s %(name)s: %(message)s'
    formatter = RedactingFormatter(fmt)
    handler.setFormatter(formatter)
    root = logging.getLogger()
    if not root.handlers:
        root.addHandler(handler)
    root.setLevel(level.upper())

# Ensure configuration is applied on import
setup_logging()
