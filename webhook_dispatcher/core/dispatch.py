"""Exact-path dispatch table built from the YAML dispatch file."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import yaml
from pydantic import ValidationError

from webhook_dispatcher.config import DispatchRule, read_dispatch_file
from webhook_dispatcher.utils.logging import get_logger

log = get_logger(__name__)


class DispatchTable:
    """Ordered, immutable mapping of inbound path -> forwarding targets."""

    def __init__(self, rules: Iterable[DispatchRule] = ()) -> None:
        self._rules: tuple[DispatchRule, ...] = tuple(rules)

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def rules(self) -> tuple[DispatchRule, ...]:
        return self._rules

    def lookup(self, path: str) -> tuple[str, ...]:
        """Return the targets of the first rule whose path equals ``path``."""
        for rule in self._rules:
            if rule.path == path:
                return rule.targets
        return ()


def load_dispatch_table(path: str | Path) -> DispatchTable:
    """Load the dispatch file, degrading to an empty table on any failure."""
    try:
        config = read_dispatch_file(path)
    except (OSError, UnicodeDecodeError, yaml.YAMLError, ValidationError) as exc:
        log.warning(
            "dispatch_config_load_failed",
            path=str(path),
            error=str(exc),
            msg="Continuing without dispatch rules",
        )
        return DispatchTable()

    log.info(
        "dispatch_config_loaded",
        path=str(path),
        schema_version=config.meta.schema_version,
        rules=len(config.dispatch),
    )
    return DispatchTable(config.dispatch)
