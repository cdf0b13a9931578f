"""
Secret scanner -- keep credentials out of snapshots.

Each line is tested against the pattern table top to bottom and the
first match wins, so a line produces at most one finding. Findings
carry a redacted copy of the line, never the secret itself.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from pathlib import Path

from ..models import SecretFinding, SecretType

logger = logging.getLogger("tether.security.secrets")

CONTEXT_LIMIT = 80
REDACTED = "=***REDACTED***"

_PATTERNS: tuple[tuple[str, int, SecretType], ...] = (
    (r"AKIA[0-9A-Z]{16}", 0, SecretType.AWS_ACCESS_KEY),
    (
        r"""aws_secret_access_key\s*[=:]\s*['"]?([A-Za-z0-9/+=]{40})['"]?""",
        re.IGNORECASE,
        SecretType.AWS_SECRET_KEY,
    ),
    (r"ghp_[a-zA-Z0-9]{36}", 0, SecretType.GITHUB_TOKEN),
    (r"gho_[a-zA-Z0-9]{36}", 0, SecretType.GITHUB_PAT),
    (r"github_pat_[a-zA-Z0-9]{22}_[a-zA-Z0-9]{59}", 0, SecretType.GITHUB_PAT),
    (
        r"""(api[_-]?key|apikey)\s*[=:]\s*['"]([A-Za-z0-9_\-]{20,})['"]""",
        re.IGNORECASE,
        SecretType.API_KEY,
    ),
    (r"-----BEGIN\s+(RSA\s+)?PRIVATE KEY-----", 0, SecretType.PRIVATE_KEY),
    (r"-----BEGIN\s+OPENSSH PRIVATE KEY-----", 0, SecretType.PRIVATE_KEY),
    (
        r"""(password|passwd|pwd)\s*[=:]\s*['"]([^'"]{8,})['"]""",
        re.IGNORECASE,
        SecretType.PASSWORD,
    ),
    (r"(postgres|mysql|mongodb)://[^:]+:[^@]+@", 0, SecretType.DATABASE_URL),
    (r"Bearer\s+[A-Za-z0-9\-._~+/]+=*", 0, SecretType.BEARER_TOKEN),
    (r"""['"]([A-Za-z0-9+/]{32,}={0,2})['"]""", 0, SecretType.HIGH_ENTROPY),
)

_REDACT = re.compile(r"""[=:]\s*['"]?([a-zA-Z0-9+/=_\-]{8,})['"]?""")


def redact_line(line: str) -> str:
    """Replace every ``=value`` / ``: value`` span and cap the length."""
    redacted = _REDACT.sub(REDACTED, line)
    if len(redacted) > CONTEXT_LIMIT:
        return redacted[: CONTEXT_LIMIT - 3] + "..."
    return redacted


class SecretScanner:
    """Compiled, read-only pattern table."""

    def __init__(self) -> None:
        self._patterns = tuple(
            (re.compile(pattern, flags), kind) for pattern, flags, kind in _PATTERNS
        )

    def scan_line(self, line: str, line_number: int) -> SecretFinding | None:
        for pattern, kind in self._patterns:
            if pattern.search(line):
                return SecretFinding(
                    line_number=line_number,
                    secret_type=kind,
                    context=redact_line(line),
                )
        return None

    def scan_content(self, content: str) -> list[SecretFinding]:
        """All findings in ``content``, at most one per line."""
        findings = []
        # Only "\n" ends a line; form feeds and other separators stay in it.
        for number, line in enumerate(content.split("\n"), start=1):
            finding = self.scan_line(line.removesuffix("\r"), number)
            if finding is not None:
                findings.append(finding)
        return findings


@lru_cache(maxsize=1)
def get_scanner() -> SecretScanner:
    """Process-wide scanner, compiled on first use."""
    return SecretScanner()


def scan_content(content: str | bytes) -> list[SecretFinding]:
    """Scan text (bytes are decoded as UTF-8 with replacement)."""
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    return get_scanner().scan_content(content)


def scan_for_secrets(file_path: Path) -> list[SecretFinding]:
    """Scan one file on disk.

    Raises:
        OSError: If the file cannot be read.
    """
    return scan_content(Path(file_path).read_bytes())
