"""Custom log formatters for the mock Identity Provider.

This module provides specialized formatters for logging, including PII redaction.
"""

import logging
import re
from typing import List, Tuple


class PIIRedactingFormatter(logging.Formatter):
    """Formatter that redacts identity data from log messages.

    Applies regex-based pattern matching to email addresses, subject
    identifiers and directory names before the record is emitted.

    Attributes:
        redact_pii: Whether to enable PII redaction
        patterns: List of (regex_pattern, replacement_text) tuples for redaction

    Example:
        >>> formatter = PIIRedactingFormatter(redact_pii=True)
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(formatter)
    """

    def __init__(
        self,
        fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt: str | None = None,
        redact_pii: bool = False,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.redact_pii = redact_pii

        self.patterns: List[Tuple[re.Pattern[str], str]] = [
            # jane.doe@corp.com
            (re.compile(r"\b[\w.+-]+@[\w-]+(?:\.[\w-]+)+\b"), "[EMAIL-REDACTED]"),
            # subject_id=12345, subjectId: abc, employee_id='42'
            (
                re.compile(
                    r"\b(subject_id|subjectId|employee_id|employeeId)([=:]\s*)[\"']?[^\s,|\"']+[\"']?"
                ),
                r"\1\2[ID-REDACTED]",
            ),
            # name=Jane Doe, first_name='Jane'
            (
                re.compile(r"\b(first_name|last_name|firstName|lastName)=[\"']?[^\s,|\"']+[\"']?"),
                r"\1=[NAME-REDACTED]",
            ),
        ]

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with optional PII redaction.

        Args:
            record: Log record to format

        Returns:
            Formatted log message with PII redacted if enabled
        """
        original = super().format(record)

        if self.redact_pii:
            for pattern, replacement in self.patterns:
                original = pattern.sub(replacement, original)

        return original
