"""Budget Tips API - daily financial tips with AI deeper-dive expansions."""

from .api import app, create_app
from .client import ExpansionClient
from .models import Expansion
from .service import TipExpansionService
from .tips import Tip, get_tip_by_id, pick_tip_for_date, random_tip

__version__ = "1.0.0"

__all__ = [
    "Expansion",
    "ExpansionClient",
    "Tip",
    "TipExpansionService",
    "app",
    "create_app",
    "get_tip_by_id",
    "pick_tip_for_date",
    "random_tip",
]
