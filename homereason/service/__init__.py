"""HTTP service exposing forward and backward chaining."""

from homereason.service.app import create_app, load_rules
from homereason.service.config import ReasonerSettings, get_settings

__all__ = ["create_app", "load_rules", "ReasonerSettings", "get_settings"]
