from app import db  # noqa: F401 - imported for model imports

from .global_setting import GlobalSetting
from .matchup import Matchup

__all__ = [
    "Matchup",
    "GlobalSetting",
]
