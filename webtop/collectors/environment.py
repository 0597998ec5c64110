"""Environment variable inspection with optional redaction."""

import logging
import os
from fnmatch import fnmatchcase
from typing import List, Mapping, Optional

from ..core.config import EnvironmentConfig
from ..core.models import EnvVariable


logger = logging.getLogger(__name__)


class EnvironmentInspector:
    """
    Exposes the server's environment variables.

    Names listed in ``exclude`` are dropped. When ``redact`` is on, values
    of names matching any of ``redact_patterns`` are replaced by ``mask``.
    """

    def __init__(
        self,
        config: Optional[EnvironmentConfig] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.config = config or EnvironmentConfig()
        self._environ = environ

    def is_sensitive(self, name: str) -> bool:
        upper = name.upper()
        return any(fnmatchcase(upper, pattern.upper()) for pattern in self.config.redact_patterns)

    def variables(self) -> List[EnvVariable]:
        """Get environment variables sorted by name."""
        environ = self._environ if self._environ is not None else os.environ
        excluded = set(self.config.exclude)

        result = []
        for name in sorted(environ):
            if name in excluded:
                continue
            value = environ[name]
            if self.config.redact and self.is_sensitive(name):
                value = self.config.mask
            result.append(EnvVariable(name=name, value=value))

        logger.debug(f"Listed {len(result)} environment variables")
        return result
