"""Rule module loader.

Rule modules are JSON files containing:
- actions: Predicates whose derived literals are reported as actions
- rules: Production rules written in literal text with ``?Var`` variables

Example module:
    {
        "name": "smart_home",
        "actions": ["TurnOn"],
        "rules": [
            {
                "id": "heater_on_cold_room",
                "antecedents": ["Temperature(?Room, ?T)", "LessThan(?T, 18)"],
                "consequent": "TurnOn(Heater)"
            }
        ]
    }

Example usage:
    from homereason.logic.kb_loader import KBLoader

    rules = KBLoader.load_modules(["smart_home"])
    rules = KBLoader.load_file(Path("my_rules.json"))
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from homereason.errors import MalformedInput, RuleSetError

from .rule import Rule, RuleSet

__all__ = ["KBLoader", "KB_DIR", "RuleModule", "RuleSpec"]

logger = logging.getLogger(__name__)

# Knowledge base directory
KB_DIR = Path(__file__).parent / "kb"


class RuleSpec(BaseModel):
    """A rule as written in a rule module."""

    id: str = Field(..., min_length=1, description="Unique rule id")
    description: str = Field(default="", description="Human-readable summary")
    antecedents: list[str] = Field(
        ..., min_length=1, description="Body literals (conjunction)"
    )
    consequent: str = Field(..., description="Head literal")

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Ensure rule id is alphanumeric with underscores or dashes."""
        if not v.replace("_", "").replace("-", "").isalnum():
            raise ValueError(f"Rule id must be alphanumeric with underscores, got: {v}")
        return v


class RuleModule(BaseModel):
    """A JSON rule module."""

    name: str = Field(default="rules", description="Module name")
    version: str = Field(default="unknown")
    description: str = Field(default="")
    actions: list[str] = Field(
        default_factory=list,
        description="Predicates reported as actions rather than facts",
    )
    rules: list[RuleSpec] = Field(default_factory=list)


class KBLoader:
    """Loader for rule modules.

    Modules in ``KB_DIR`` are addressed by name; any other file can be
    loaded by path. Raw module data is cached by path.
    """

    # Cache for loaded raw modules
    _cache: dict[Path, RuleModule] = {}

    @classmethod
    def available_modules(cls) -> list[str]:
        """List packaged rule modules.

        Returns:
            List of module names (without .json extension)
        """
        if not KB_DIR.exists():
            return []
        return sorted(f.stem for f in KB_DIR.glob("*.json"))

    @classmethod
    def load_modules(cls, module_names: list[str]) -> RuleSet:
        """Load packaged modules and merge them into one rule set.

        Rules keep their order within a module; modules are appended in
        the order given.

        Raises:
            RuleSetError: If a module is missing or invalid
        """
        paths = []
        for name in module_names:
            path = KB_DIR / f"{name}.json"
            if not path.exists():
                raise RuleSetError(
                    f"Rule module '{name}' not found. Available: {cls.available_modules()}"
                )
            paths.append(path)
        return cls._build([cls._load_module_data(p) for p in paths], ", ".join(module_names))

    @classmethod
    def load_file(cls, path: Path | str) -> RuleSet:
        """Load a rule set from a single JSON file.

        Raises:
            RuleSetError: If the file is missing or invalid
        """
        path = Path(path)
        if not path.exists():
            raise RuleSetError(f"Rule file not found: {path}")
        return cls._build([cls._load_module_data(path)], str(path))

    @classmethod
    def from_data(cls, data: dict[str, Any], source: str = "<memory>") -> RuleSet:
        """Build a rule set from already-parsed module data."""
        return cls._build([cls._validate(data, source)], source)

    @classmethod
    def _load_module_data(cls, path: Path) -> RuleModule:
        """Load and validate raw module data from a JSON file."""
        path = path.resolve()
        if path in cls._cache:
            return cls._cache[path]

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise RuleSetError(f"Invalid JSON in rule file {path}: {e}") from e

        module = cls._validate(data, str(path))
        cls._cache[path] = module
        logger.debug(f"Loaded rule module '{module.name}' from {path}")
        return module

    @classmethod
    def _validate(cls, data: Any, source: str) -> RuleModule:
        try:
            return RuleModule.model_validate(data)
        except ValidationError as e:
            raise RuleSetError(f"Rule module {source} failed validation:\n{e}") from e

    @classmethod
    def _build(cls, modules: list[RuleModule], source: str) -> RuleSet:
        rules: list[Rule] = []
        actions: set[str] = set()

        for module in modules:
            actions.update(module.actions)
            for spec in module.rules:
                try:
                    rules.append(
                        Rule.parse(
                            id=spec.id,
                            antecedents=spec.antecedents,
                            consequent=spec.consequent,
                            description=spec.description,
                        )
                    )
                except MalformedInput as e:
                    raise RuleSetError(f"Rule '{spec.id}' in {source}: {e}") from e

        rule_set = RuleSet(rules=tuple(rules), action_predicates=frozenset(actions), source=source)
        logger.info(f"Loaded {len(rule_set)} rules from {source}")
        return rule_set

    @classmethod
    def clear_cache(cls) -> None:
        """Clear the module cache."""
        cls._cache.clear()
