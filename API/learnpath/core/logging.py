"""Log setup for the journey engine.

Every record carries a ``domain`` so output from a single journey can be followed
across the agents that served it. Secrets are scrubbed at the handler, which
covers messages from third-party loggers too.
"""
import logging
import re
import sys

DOMAIN_JOURNEY = "journey"
DOMAIN_GENERATION = "generation"
DOMAIN_EVALUATION = "evaluation"
DOMAIN_REPORTING = "reporting"
DOMAIN_API = "api"


def get_domain_logger(name: str, domain: str) -> logging.LoggerAdapter[logging.Logger]:
    """Logger whose records are tagged with ``domain``."""
    base = logging.getLogger(name)
    return logging.LoggerAdapter(base, {"domain": domain})


class DomainDefaultFilter(logging.Filter):
    """Tags untagged records, e.g. from uvicorn, so the %(domain)s format field resolves."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "domain"):
            record.domain = "engine"  # type: ignore[attr-defined]
        return True


_SECRET_PATTERNS = [
    re.compile(r"(?i)(x-goog-api-key\s*[=:]\s*)([^\s,;]+)"),
    re.compile(r"(?i)(api[_-]?key\s*[=:]\s*)([^\s,;]+)"),
    re.compile(r"(?i)(authorization\s*[=:]\s*bearer\s+)([^\s,;]+)"),
    re.compile(r"(?i)(key=)([^\s&,;]+)"),
]


def redact_secrets(message: str) -> str:
    text = str(message or "")
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(r"\1[REDACTED]", text)
    return text


class SecretRedactionFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact_secrets(record.getMessage())
        record.args = ()
        return True


class QuietHealthAccessFilter(logging.Filter):
    """Drop successful uvicorn access lines for the /health probe."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        return not ("/health" in message and " 200" in message)


def configure_logging(level: str = "INFO") -> None:
    redaction_filter = SecretRedactionFilter()
    domain_filter = DomainDefaultFilter()
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | [%(domain)s] | %(name)s | %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    root = logging.getLogger()
    for handler in root.handlers:
        handler.addFilter(domain_filter)
        handler.addFilter(redaction_filter)
    # Provider URLs may carry the API key as a query parameter.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").addFilter(QuietHealthAccessFilter())
