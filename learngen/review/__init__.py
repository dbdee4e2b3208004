"""SM-2 review scheduling for generated cards."""
from learngen.review.scheduler import (
    CardState,
    ReviewGrade,
    ReviewSchedule,
    schedule_review,
)

__all__ = ["CardState", "ReviewGrade", "ReviewSchedule", "schedule_review"]
