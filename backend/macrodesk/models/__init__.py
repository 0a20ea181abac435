"""Models package: re-export all ORM classes so metadata sees every table."""
from macrodesk.models.macro import MacroRecord  # noqa: F401
from macrodesk.models.feedback import FeedbackRecord  # noqa: F401
from macrodesk.models.template import QATemplate  # noqa: F401
