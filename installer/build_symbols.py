# installer/build_symbols.py
# -*- coding: utf-8 -*-
"""
Build define-symbol store.

Symbols are kept per build target group in a YAML file::

    Standalone: [ODIN_INSPECTOR, DOTWEEN]
    Android: [DOTWEEN]
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import yaml

from common.core_utils import log_installer

module_logger = logging.getLogger(__name__)


class DefineSymbolStore:
    """Reads and writes the define symbols of each build target group."""

    def __init__(
        self,
        path: Path,
        groups: Iterable[str],
        current_logger: Optional[logging.Logger] = None,
    ):
        self.path = Path(path)
        self.groups = list(groups)
        self.logger = current_logger or module_logger

    def _load(self) -> Dict[str, List[str]]:
        if not self.path.is_file():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            log_installer(
                f"Could not parse build settings {self.path}: {e}",
                "warning",
                self.logger,
            )
            return {}
        if not isinstance(data, dict):
            return {}
        return {
            str(group): [str(symbol) for symbol in (symbols or [])]
            for group, symbols in data.items()
        }

    def _save(self, data: Dict[str, List[str]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    def get_symbols(self, group: str) -> List[str]:
        return self._load().get(group, [])

    def set_symbols(self, group: str, symbols: Iterable[str]) -> None:
        data = self._load()
        data[group] = list(dict.fromkeys(symbols))
        self._save(data)

    def remove_symbol(self, symbol: str) -> List[str]:
        """
        Retracts `symbol` from every configured target group.

        Returns:
            The groups the symbol was removed from.
        """
        data = self._load()
        removed_from: List[str] = []
        for group in self.groups:
            symbols = data.get(group, [])
            if symbol in symbols:
                data[group] = [s for s in symbols if s != symbol]
                removed_from.append(group)

        if removed_from:
            self._save(data)
            log_installer(
                f"Removed define symbol {symbol} from {', '.join(removed_from)}",
                "info",
                self.logger,
            )
        return removed_from
