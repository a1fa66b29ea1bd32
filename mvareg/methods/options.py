"""
Option Strings
==============

Methods, the trainer and the data split are configured with colon-separated
option strings::

    "!H:!V:NTrees=64::BoostType=Grad:Shrinkage=0.3:MaxDepth=4"

- ``Key=Value`` sets a value (kept as a string until read)
- a bare ``Key`` sets a boolean flag, ``!Key`` clears it
- empty tokens (``::``) are skipped
- keys are matched case-insensitively

Reads are tracked so that callers can report options that nothing consumed.
"""

import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_TRUE = {'true', 't', 'yes', 'y', '1', 'on'}
_FALSE = {'false', 'f', 'no', 'n', '0', 'off'}


class Options:
    """Parsed option string with typed, case-insensitive accessors."""

    def __init__(self, option_string: str = ''):
        self.option_string = option_string or ''
        # lower-case key -> (original key, raw value)
        self._values: Dict[str, tuple] = {}
        self._used = set()

        for token in self.option_string.split(':'):
            token = token.strip()
            if not token:
                continue
            if '=' in token:
                key, value = token.split('=', 1)
                key, value = key.strip(), value.strip()
                if not key:
                    raise ValueError(f"Option without a name: '{token}'")
            elif token.startswith('!'):
                key, value = token[1:].strip(), False
            else:
                key, value = token, True
            if not key:
                raise ValueError(f"Malformed option token: '{token}'")
            self._values[key.lower()] = (key, value)

    def __contains__(self, key: str) -> bool:
        return key.lower() in self._values

    def __len__(self) -> int:
        return len(self._values)

    def _raw(self, key: str):
        self._used.add(key.lower())
        return self._values[key.lower()][1]

    def get_str(self, key: str, default: Optional[str] = None) -> Optional[str]:
        if key not in self:
            return default
        value = self._raw(key)
        if isinstance(value, bool):
            raise ValueError(f"Option '{key}' needs a value, got flag")
        return value

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        value = self.get_str(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"Option '{key}' must be an integer, got '{value}'")

    def get_float(self, key: str, default: Optional[float] = None) -> Optional[float]:
        value = self.get_str(key)
        if value is None:
            return default
        try:
            return float(value.rstrip('%'))
        except ValueError:
            raise ValueError(f"Option '{key}' must be a number, got '{value}'")

    def get_bool(self, key: str, default: bool = False) -> bool:
        if key not in self:
            return default
        value = self._raw(key)
        if isinstance(value, bool):
            return value
        lowered = value.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ValueError(f"Option '{key}' must be a boolean, got '{value}'")

    def ignore(self, *keys: str) -> None:
        """Mark keys as consumed without reading them."""
        for key in keys:
            self._used.add(key.lower())

    def unused(self) -> List[str]:
        """Original spelling of every option never read or ignored."""
        return [orig for low, (orig, _) in self._values.items() if low not in self._used]

    def warn_unused(self, owner: str) -> None:
        for key in self.unused():
            logger.warning(f"{owner}: option '{key}' is not supported and was ignored")

    def to_dict(self) -> Dict[str, Any]:
        return {orig: value for orig, value in self._values.values()}

    def __repr__(self) -> str:
        return f"Options({self.option_string!r})"


# Display / verbosity flags every consumer accepts and ignores.
DISPLAY_FLAGS = ('H', 'V', 'Silent', 'Color', 'DrawProgressBar', 'VerboseLevel')
