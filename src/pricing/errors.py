"""Errors raised by the pricing pipeline.

Input validation uses Protean's ``ValidationError`` like the rest of the
codebase. The classes here cover conditions that are not bad input.
"""


class ConfigurationError(Exception):
    """Discount or shipping configuration is internally inconsistent."""

    def __init__(self, messages: dict) -> None:
        self.messages = messages
        super().__init__(messages)


class ReconciliationMismatch(Exception):
    """Client-submitted totals disagree with the server computation."""

    def __init__(self, report) -> None:
        self.report = report
        super().__init__(f"Totals mismatch on: {', '.join(m.field for m in report.mismatches)}")
