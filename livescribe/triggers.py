import json
import re
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Tuple, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import RuleTableError
from .logging_config import get_logger

logger = get_logger(__name__)

TRIGGER_GROUPS = ("question", "math", "doubt")


class TriggerRule(BaseModel):
    """A named regular expression tagging text with its group."""

    name: str = Field(description="Rule identifier reported when the rule matches")
    pattern: str = Field(description="Regular expression searched in the segment text")
    ignore_case: bool = Field(default=False, description="Match case-insensitively")

    @field_validator("pattern")
    @classmethod
    def _check_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid regular expression {value!r}: {e}") from e
        return value

    def compile(self) -> Pattern:
        return re.compile(self.pattern, re.IGNORECASE if self.ignore_case else 0)


class TriggerTable(BaseModel):
    """Rule groups deciding whether a segment gets unprompted LLM analysis."""

    question: List[TriggerRule] = Field(default_factory=list, description="Explicit interrogatives")
    math: List[TriggerRule] = Field(default_factory=list, description="Arithmetic expressions, symbolic or spelled out")
    doubt: List[TriggerRule] = Field(default_factory=list, description="Implicit doubt such as 'not sure' or 'maybe'")


@dataclass(frozen=True)
class TriggerReport:
    question: bool = False
    math: bool = False
    doubt: bool = False
    matched_rules: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def should_analyze(self) -> bool:
        """Any group matching is enough for automatic analysis."""
        return self.question or self.math or self.doubt


def load_rule_table(source: Union[str, Path, None] = None, filename: str = "triggers.json") -> dict:
    """Read a JSON rule table, from `source` or from the packaged rules directory."""
    try:
        if source is None:
            text = resources.files("livescribe.rules").joinpath(filename).read_text(encoding="utf-8")
        else:
            text = Path(source).read_text(encoding="utf-8")
        return json.loads(text)
    except (OSError, json.JSONDecodeError) as e:
        raise RuleTableError(f"Cannot load rule table {source or filename}: {e}") from e


class TriggerEngine:
    """Evaluates the trigger table against a single segment's text."""

    def __init__(self, table: Optional[TriggerTable] = None):
        if table is None:
            table = self._parse(load_rule_table())
        self.table = table
        self._compiled: Dict[str, List[Tuple[str, Pattern]]] = {
            group: [(rule.name, rule.compile()) for rule in getattr(table, group)] for group in TRIGGER_GROUPS
        }
        logger.debug(f"Trigger engine loaded {sum(len(rules) for rules in self._compiled.values())} rules")

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "TriggerEngine":
        return cls(cls._parse(load_rule_table(path)))

    @staticmethod
    def _parse(data: dict) -> TriggerTable:
        try:
            return TriggerTable.model_validate(data)
        except ValidationError as e:
            raise RuleTableError(f"Invalid trigger table: {e}") from e

    def evaluate(self, text: str) -> TriggerReport:
        """Match every group against `text`.

        Args:
            text: The segment's own text; earlier segments never influence the outcome

        Returns:
            TriggerReport: Which groups matched and the names of the matching rules
        """
        if not text or not text.strip():
            return TriggerReport()

        matched: List[str] = []
        groups: Dict[str, bool] = {}
        for group, rules in self._compiled.items():
            hits = [name for name, pattern in rules if pattern.search(text)]
            groups[group] = bool(hits)
            matched.extend(hits)

        return TriggerReport(matched_rules=tuple(matched), **groups)


_default_engine: Optional[TriggerEngine] = None


def get_default_engine() -> TriggerEngine:
    """Get the trigger engine built from the packaged rule table."""
    global _default_engine
    if _default_engine is None:
        _default_engine = TriggerEngine()
    return _default_engine
