from theo_notes.models.video import Video
from theo_notes.models.actionable_point import ActionablePoint

__all__ = ["Video", "ActionablePoint"]
