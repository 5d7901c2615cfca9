"""
Debug artifact capture.

When debug mode is on, the raw RDAP or WHOIS payload of each lookup is
written to ``debug_<source>_<domain>.txt`` so unusual registry formats can be
inspected. Writing is best effort: failures are logged and never raised.
"""

import json
from pathlib import Path
from typing import Any, Optional

from .audit_logger import AuditLogger
from .enums import SourceKind


def artifact_filename(domain: str, source: SourceKind) -> str:
    """Deterministic file name for a domain's raw payload."""
    return f"debug_{source.value}_{domain.replace('.', '_')}.txt"


class DebugArtifactWriter:
    """Writes raw registration payloads to disk when enabled."""

    def __init__(
        self,
        directory: Path,
        enabled: bool = False,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._directory = Path(directory)
        self._enabled = enabled
        self._logger = logger

    @property
    def enabled(self) -> bool:
        return self._enabled

    def path_for(self, domain: str, source: SourceKind) -> Path:
        return self._directory / artifact_filename(domain, source)

    def write(self, domain: str, data: Any, source: SourceKind) -> Optional[Path]:
        """
        Save a raw payload for ``domain``.

        Dicts and lists are written as indented JSON, anything else as text.

        Returns:
            The written path, or None when disabled or the write failed
        """
        if not self._enabled:
            return None

        path = self.path_for(domain, source)
        try:
            if isinstance(data, (dict, list)):
                content = json.dumps(data, indent=2, ensure_ascii=False)
            else:
                content = "" if data is None else str(data)
            self._directory.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except (OSError, TypeError, ValueError) as e:
            if self._logger:
                self._logger.log_error(
                    "DebugArtifactWriter",
                    f"Error saving debug data for {domain}",
                    error=e,
                    additional_data={"path": str(path), "source": source.value},
                )
            return None

        if self._logger:
            self._logger.debug(
                "DebugArtifactWriter",
                f"Debug data saved to {path}",
                {"domain": domain, "source": source.value},
            )
        return path
