"""Logging Hardening and Redaction.

This module provides filters to prevent sensitive data (blob IVs and tags,
master keys, bearer tokens) from appearing in application logs.
"""
import logging
import re

SECRET_PATTERNS = [
    (re.compile(r'("(?:iv|tag)":\s*")[0-9a-f]{32}(")'), r'\1[REDACTED]\2'),
    (re.compile(r'("(?:encryptedPath|encrypted_path)":\s*")[^"]*(")'), r'\1[REDACTED]\2'),
    (re.compile(r'\b(iv|tag)=[0-9a-f]{32}\b'), r'\1=[REDACTED]'),
    # Bare 256-bit hex keys
    (re.compile(r'\b[0-9a-fA-F]{64}\b'), '[REDACTED_KEY]'),
    (re.compile(r'(Bearer\s+)[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]*'), r'\1[REDACTED]'),
]


def redact(text: str) -> str:
    for pattern, replacement in SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SecretRedactionFilter(logging.Filter):
    """Filter that redacts secret-like patterns from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)

        if record.args and isinstance(record.args, tuple):
            record.args = tuple(redact(a) if isinstance(a, str) else a for a in record.args)

        return True


def setup_logging_redaction(level: str = "INFO") -> None:
    """Configure root logging and attach the SecretRedactionFilter.

    The filter goes on every root handler (records from child loggers are
    filtered there) and on the root and existing loggers for records
    handled before propagation.
    """
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    redact_filter = SecretRedactionFilter()

    root_logger = logging.getLogger()
    targets = [root_logger, *root_logger.handlers]
    targets += [
        logging.getLogger(name) for name in logging.root.manager.loggerDict
    ]
    for target in targets:
        # Remove existing filters if any (to avoid duplicates)
        for f in target.filters[:]:
            if isinstance(f, SecretRedactionFilter):
                target.removeFilter(f)
        target.addFilter(redact_filter)

    logging.getLogger("multipart").setLevel(logging.WARNING)
    logging.info("Logging redaction filters active.")
