"""
Daitch-Mokotoff Soundex Module

This module computes Daitch-Mokotoff Soundex codes for personal names. The encoding maps
a name to one or more 6-digit codes describing its pronunciation, so that spelling
variants of the same Slavic, Germanic or Yiddish surname end up with a shared code.

## Overview

The core functionality is provided by the `DaitchMokotoffSoundex` class, which runs a
short pipeline for every name:

1. **Normalization**: Whitespace is dropped, letters are lowercased and accented letters folded
2. **Rule Matching**: The longest rule pattern starting at the current position is applied
3. **Branching**: Ambiguous letter groups ("ch" may sound as 4 or 5) fork the encoding
4. **Merging**: After every rule, branches with identical digits collapse into one
5. **Output Formatting**: Branches are padded to 6 digits and joined with "|"

## Architecture

- **RuleTable**: Immutable rule groups keyed by leading character, longest pattern first
- **CharacterNormalizer**: Pure whitespace removal, lowercasing and accent folding
- **BranchingEncoder**: The branching automaton walking the normalized name
- **ResultFormatter**: Joins codes and exposes the primary code
- **DaitchMokotoffSoundex**: Facade wiring the services together

## Usage Examples

```python
from dmsoundex.daitch_mokotoff import encode, full_encode

encode("Washington")
# Returns: "746536"

full_encode("AUERBACH")
# Returns: "097400|097500"

# Custom rule file
from dmsoundex.daitch_mokotoff import DaitchMokotoffConfig, DaitchMokotoffSoundex

encoder = DaitchMokotoffSoundex(DaitchMokotoffConfig.create_default().with_rules_path(path))
```

## Rule Semantics

Every rule carries three replacements: one used when no rule has been applied yet in the
name, one used when the letter after the matched pattern is a vowel, and a default. A
replacement may hold alternatives separated by "|"; each alternative opens a new branch.

A digit is not appended when the previous token of the branch ends with it, so "tz" after
"s" does not repeat the 4. The transitions m->n and n->m are exempt: both digits are kept.

## Error Handling

- `ConfigurationError`: raised while loading rules, with source and line number
- `EncoderError`: raised when a non-string value is passed to the encoder

## Thread Safety

Rule tables and normalization maps are immutable once built. The module-level encoder is
created exactly once under a lock and is safe to use from multiple threads.
"""

from __future__ import annotations
import logging
import threading
import time
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
from dataclasses import dataclass, replace

from dmsoundex.daitch_mokotoff_data import ACCENT_FOLDING, DEFAULT_RULES_PATH, VOWELS


# ════════════════════════════════════════════════════════════════════════════════
# ERRORS
# ════════════════════════════════════════════════════════════════════════════════


class ConfigurationError(ValueError):
    """Rule definitions could not be loaded."""

    def __init__(self, message: str, source: Optional[str] = None, line_number: Optional[int] = None):
        super().__init__(message)
        self.source = source
        self.line_number = line_number


class EncoderError(TypeError):
    """Value passed to the encoder is not a string."""


# ════════════════════════════════════════════════════════════════════════════════
# RESULT TYPES
# ════════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class RuleTableInfo:
    """Immutable summary of a loaded rule table."""

    source: str
    rule_count: int
    group_count: int
    longest_pattern: int


# ════════════════════════════════════════════════════════════════════════════════
# IMMUTABLE CONFIGURATION DATA
# ════════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class DaitchMokotoffConfig:
    """Immutable encoder configuration."""

    # Rule source
    rules_path: Path
    comment_marker: str

    # Separators
    alternative_separator: str
    output_separator: str

    # Code shape
    code_length: int
    padding_digit: str

    # Letters selecting the "before a vowel" replacement
    vowels: FrozenSet[str]

    @classmethod
    def create_default(cls) -> "DaitchMokotoffConfig":
        """Factory method for the default configuration using the bundled rules."""
        return cls(
            rules_path=DEFAULT_RULES_PATH,
            comment_marker="//",
            alternative_separator="|",
            output_separator="|",
            code_length=6,
            padding_digit="0",
            vowels=VOWELS,
        )

    def with_rules_path(self, new_rules_path: Union[str, Path]) -> "DaitchMokotoffConfig":
        """Immutable update method for the rule source."""
        return replace(self, rules_path=Path(new_rules_path))

    def with_code_length(self, code_length: int) -> "DaitchMokotoffConfig":
        return replace(self, code_length=code_length)


# ════════════════════════════════════════════════════════════════════════════════
# RULE TABLE
# ════════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Rule:
    """A pattern and its three replacements."""

    pattern: str
    at_start: str
    before_vowel: str
    default: str

    def matches(self, text: str, index: int = 0) -> bool:
        return text.startswith(self.pattern, index)

    def replacement_for(self, text: str, index: int, at_start: bool, vowels: FrozenSet[str] = VOWELS) -> str:
        """
        Pick the replacement for a match of this rule at `index`.

        At the start of a name the first replacement is used. Otherwise the letter
        following the matched pattern selects between the vowel and default forms.
        """
        if at_start:
            return self.at_start

        next_index = index + len(self.pattern)
        if next_index < len(text) and text[next_index] in vowels:
            return self.before_vowel

        return self.default

    def __str__(self) -> str:
        return f"{self.pattern}=({self.at_start},{self.before_vowel},{self.default})"


@dataclass(frozen=True)
class RuleTable:
    """Rules grouped by leading character, each group ordered longest pattern first."""

    source: str
    groups: Mapping[str, Tuple[Rule, ...]]

    @classmethod
    def load(cls, lines: Iterable[str], source: str = "<rules>", comment_marker: str = "//") -> "RuleTable":
        """Parse rule lines into an immutable table. Raises ConfigurationError on bad input."""
        start_time = time.perf_counter()
        grouped: Dict[str, List[Rule]] = {}

        for line_number, raw_line in enumerate(lines, start=1):
            rule = cls._parse_line(raw_line, line_number, source, comment_marker)
            if rule is not None:
                grouped.setdefault(rule.pattern[0], []).append(rule)

        if not grouped:
            raise ConfigurationError(f"No rules found in {source}", source=source)

        # sorted() is stable, rules of equal length keep their file order
        groups = {
            key: tuple(sorted(rules, key=lambda rule: len(rule.pattern), reverse=True))
            for key, rules in grouped.items()
        }
        table = cls(source=source, groups=MappingProxyType(groups))

        load_time = time.perf_counter() - start_time
        logging.info(f"Loaded {len(table)} rules in {len(groups)} groups from {source} in {load_time:.3f}s")
        return table

    @classmethod
    def from_path(cls, path: Union[str, Path], comment_marker: str = "//") -> "RuleTable":
        """Load a UTF-8 rule file."""
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Unable to load rules from {path}: {e}", source=str(path)) from e
        return cls.load(text.splitlines(), source=str(path), comment_marker=comment_marker)

    @staticmethod
    def _parse_line(raw_line: str, line_number: int, source: str, comment_marker: str) -> Optional[Rule]:
        line = raw_line
        comment_index = line.find(comment_marker)
        if comment_index >= 0:
            line = line[:comment_index]

        line = line.strip()
        if not line:
            return None

        parts = line.split()
        if len(parts) != 4:
            raise ConfigurationError(
                f"Malformed rule statement split into {len(parts)} parts: {raw_line.strip()!r} "
                f"at line {line_number} in {source}",
                source=source,
                line_number=line_number,
            )

        pattern, at_start, before_vowel, default = (_strip_quotes(part) for part in parts)
        if not pattern:
            raise ConfigurationError(
                f"Empty rule pattern at line {line_number} in {source}", source=source, line_number=line_number
            )

        return Rule(pattern, at_start, before_vowel, default)

    def group(self, ch: str) -> Tuple[Rule, ...]:
        return self.groups.get(ch, ())

    def find(self, text: str, index: int = 0) -> Optional[Rule]:
        """First (longest) rule matching `text` at `index`, if any."""
        for rule in self.group(text[index]):
            if rule.matches(text, index):
                return rule
        return None

    def info(self) -> RuleTableInfo:
        return RuleTableInfo(
            source=self.source,
            rule_count=len(self),
            group_count=len(self.groups),
            longest_pattern=max(len(rules[0].pattern) for rules in self.groups.values()),
        )

    def __len__(self) -> int:
        return sum(len(rules) for rules in self.groups.values())

    def __str__(self) -> str:
        return "\n".join(str(rule) for rules in self.groups.values() for rule in rules)


def _strip_quotes(value: str) -> str:
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value


# ════════════════════════════════════════════════════════════════════════════════
# NORMALIZATION SERVICE
# ════════════════════════════════════════════════════════════════════════════════


class CharacterNormalizer:
    """Drops whitespace, lowercases and folds accented letters."""

    def __init__(self, folding: Mapping[str, str] = ACCENT_FOLDING):
        self._folding = folding

    def normalize(self, source: Optional[str]) -> Optional[str]:
        if source is None:
            return None

        chars = []
        for ch in source:
            if ch.isspace():
                continue
            ch = ch.lower()
            chars.append(self._folding.get(ch, ch))
        return "".join(chars)


# ════════════════════════════════════════════════════════════════════════════════
# BRANCHING ENCODER
# ════════════════════════════════════════════════════════════════════════════════

# M and N share a digit but never collapse into each other
_FORCED_TRANSITIONS = frozenset({("m", "n"), ("n", "m")})


@dataclass(frozen=True)
class Branch:
    """One candidate encoding: accumulated digits and the last token processed."""

    digits: str = ""
    last_token: Optional[str] = None

    def process_next_token(self, token: str, force: bool, max_length: int) -> "Branch":
        append = not self.last_token or not self.last_token.endswith(token) or force
        digits = (self.digits + token)[:max_length] if append else self.digits
        return Branch(digits, token)

    def finish(self, length: int, padding_digit: str) -> str:
        return self.digits.ljust(length, padding_digit)[:length]


class BranchingEncoder:
    """Walks a normalized name through the rule table, forking on ambiguous rules."""

    def __init__(self, rule_table: RuleTable, config: DaitchMokotoffConfig):
        self._rule_table = rule_table
        self._config = config

    def encode(self, normalized: str) -> Tuple[str, ...]:
        """
        Encode an already normalized name.

        Returns the ordered, duplicate-free codes of all surviving branches. Characters
        without any rule group (apostrophes, hyphens, digits) are skipped without touching
        the matching context, so they never change the result.
        """
        branches: Dict[str, Branch] = {"": Branch()}
        matched_before = False
        last_char: Optional[str] = None
        index = 0

        while index < len(normalized):
            ch = normalized[index]
            if ch.isspace():
                index += 1
                continue

            if not self._rule_table.group(ch):
                index += 1
                continue

            rule = self._rule_table.find(normalized, index)
            if rule is None:
                last_char = ch
                index += 1
                continue

            replacement = rule.replacement_for(normalized, index, not matched_before, self._config.vowels)
            alternatives = replacement.split(self._config.alternative_separator)
            force = (last_char, ch) in _FORCED_TRANSITIONS
            branches = self._apply_alternatives(branches.values(), alternatives, force)

            index += len(rule.pattern)
            last_char = ch
            matched_before = True

        codes = tuple(
            dict.fromkeys(
                branch.finish(self._config.code_length, self._config.padding_digit) for branch in branches.values()
            )
        )
        logging.debug(f"Encoded '{normalized}' into {len(codes)} code(s)")
        return codes

    def _apply_alternatives(
        self, branches: Iterable[Branch], alternatives: List[str], force: bool
    ) -> Dict[str, Branch]:
        # every alternative starts from the branch's state before this rule; the first
        # branch seen for a digit sequence is kept
        next_branches: Dict[str, Branch] = {}
        for branch in branches:
            for token in alternatives:
                candidate = branch.process_next_token(token, force, self._config.code_length)
                next_branches.setdefault(candidate.digits, candidate)
        return next_branches


# ════════════════════════════════════════════════════════════════════════════════
# RESULT FORMATTING
# ════════════════════════════════════════════════════════════════════════════════


class ResultFormatter:
    """Formats the code set produced by the encoder."""

    def __init__(self, separator: str = "|"):
        self._separator = separator

    def format(self, codes: Sequence[str]) -> str:
        return self._separator.join(codes)

    def primary(self, codes: Sequence[str]) -> str:
        return codes[0] if codes else ""


# ════════════════════════════════════════════════════════════════════════════════
# MAIN ENCODER CLASS
# ════════════════════════════════════════════════════════════════════════════════


class DaitchMokotoffSoundex:
    """Daitch-Mokotoff Soundex encoder service."""

    def __init__(self, config: Optional[DaitchMokotoffConfig] = None, rule_table: Optional[RuleTable] = None):
        self._config = config or DaitchMokotoffConfig.create_default()
        if rule_table is None:
            try:
                rule_table = RuleTable.from_path(self._config.rules_path, self._config.comment_marker)
            except ConfigurationError as e:
                logging.error(f"Failed to load Daitch-Mokotoff rules: {e}")
                raise
        self._rule_table = rule_table
        self._normalizer = CharacterNormalizer()
        self._encoder = BranchingEncoder(self._rule_table, self._config)
        self._formatter = ResultFormatter(self._config.output_separator)

    @classmethod
    def from_lines(
        cls, lines: Iterable[str], source: str = "<rules>", config: Optional[DaitchMokotoffConfig] = None
    ) -> "DaitchMokotoffSoundex":
        """Build an encoder from rule text instead of a rule file."""
        config = config or DaitchMokotoffConfig.create_default()
        return cls(config, RuleTable.load(lines, source=source, comment_marker=config.comment_marker))

    # Public API methods
    def encode(self, name: Optional[str]) -> Optional[str]:
        """Primary code of `name`, None for None and "" for a name without letters."""
        if name is None:
            return None
        return self._formatter.primary(self.encode_all(name))

    def full_encode(self, name: Optional[str]) -> Optional[str]:
        """All codes of `name` joined with "|"."""
        if name is None:
            return None
        return self._formatter.format(self.encode_all(name))

    def encode_all(self, name: Optional[str]) -> Tuple[str, ...]:
        """All codes of `name` in the order they were produced."""
        if name is not None and not isinstance(name, str):
            raise EncoderError(
                f"Parameter supplied to Daitch-Mokotoff encode is not of type str: {type(name).__name__}"
            )

        normalized = self._normalizer.normalize(name)
        if not normalized:
            return ()
        return self._encoder.encode(normalized)

    def rule_table_info(self) -> RuleTableInfo:
        return self._rule_table.info()

    def __str__(self) -> str:
        return str(self._rule_table)


def run_performance_test(iterations: int = 10000) -> None:
    """Time the default encoder on a fixed set of surnames."""
    names = [
        "Washington",
        "Rosochowaciec",
        "Jackson-Jackson",
        "GERSCHFELD",
        "Przemysl",
        "Kleinmann",
        "Straßburg",
        "Moskowitz",
    ]
    encoder = DaitchMokotoffSoundex()

    start_time = time.perf_counter()
    for i in range(iterations):
        encoder.full_encode(names[i % len(names)])
    elapsed = time.perf_counter() - start_time

    rate = iterations / elapsed if elapsed > 0 else float("inf")
    print(f"Encoded {iterations} names in {elapsed:.3f}s ({rate:.0f} names/second)")


# ════════════════════════════════════════════════════════════════════════════════
# MODULE-LEVEL CONVENIENCE FUNCTIONS
# ════════════════════════════════════════════════════════════════════════════════

# Global encoder instance for module-level functions
_global_encoder: Optional[DaitchMokotoffSoundex] = None
_global_encoder_lock = threading.Lock()


def _get_global_encoder() -> DaitchMokotoffSoundex:
    """Get or create the global encoder instance, exactly once."""
    global _global_encoder
    if _global_encoder is None:
        with _global_encoder_lock:
            if _global_encoder is None:
                _global_encoder = DaitchMokotoffSoundex()
    return _global_encoder


def encode(name: Optional[str]) -> Optional[str]:
    """
    Module-level convenience function returning the primary code.

    Args:
        name: Input name string

    Returns:
        6-digit code, None for None input, "" for an empty name
    """
    return _get_global_encoder().encode(name)


def full_encode(name: Optional[str]) -> Optional[str]:
    """Module-level convenience function returning all codes joined with "|"."""
    return _get_global_encoder().full_encode(name)


def get_rule_table_info() -> Dict[str, Union[str, int]]:
    """Get information about the global rule table as a dictionary."""
    info = _get_global_encoder().rule_table_info()
    return {
        "source": info.source,
        "rule_count": info.rule_count,
        "group_count": info.group_count,
        "longest_pattern": info.longest_pattern,
    }


# CLI entry point
if __name__ == "__main__":
    run_performance_test()
