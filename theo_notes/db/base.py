from theo_notes.db.base_class import Base  # noqa: F401

# Import all the models here so that Base has them registered
# This file should NOT be imported by models.
from theo_notes.models.video import Video  # noqa: F401
from theo_notes.models.actionable_point import ActionablePoint  # noqa: F401
